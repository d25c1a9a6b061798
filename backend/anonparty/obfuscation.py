"""Reversible answer encoding.

Answers are stored base64-encoded so they do not show up as plain text in
store dumps before the host releases them. This is cosmetic: anyone with the
payload can decode it.
"""

import base64
import binascii


def obfuscate(text: str) -> str:
    return base64.b64encode(text.encode('utf-8')).decode('ascii')


def reveal(payload: str) -> str:
    try:
        return base64.b64decode(payload.encode('ascii'), validate=True).decode('utf-8')
    except (binascii.Error, UnicodeError) as exc:
        raise ValueError('Malformed answer payload') from exc
