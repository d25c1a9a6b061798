"""Room share links.

A share link carries the room code and passcode as query parameters so a
friend can join without typing them::

    https://party.example/?room=AB12CD&passcode=XY34ZW
"""

from urllib.parse import parse_qs, quote, urlencode, urlsplit


def build_share_link(base_url: str, room_code: str, passcode: str) -> str:
    base = (base_url or '').rstrip('/')
    return f"{base}/?{urlencode({'room': room_code, 'passcode': passcode})}"


def parse_share_link(link: str) -> tuple[str, str]:
    """Return ``(room_code, passcode)`` from a share link."""
    query = parse_qs(urlsplit(link or '').query)
    room = (query.get('room') or [''])[0].strip().upper()
    passcode = (query.get('passcode') or [''])[0].strip()
    if not room or not passcode:
        raise ValueError('Share link is missing the room or passcode')
    return room, passcode


def share_message(room_code: str, passcode: str, link: str) -> str:
    return (
        "Anonymous guessing party!\n\n"
        "Join my room:\n"
        f"*Room:* {room_code}\n"
        f"*Passcode:* {passcode}\n\n"
        f"*Link:* {link}"
    )


def whatsapp_share_url(room_code: str, passcode: str, link: str) -> str:
    return f"https://wa.me/?text={quote(share_message(room_code, passcode, link))}"


def share_payload(base_url: str, room_code: str, passcode: str) -> dict:
    link = build_share_link(base_url, room_code, passcode)
    return {
        'room_code': room_code,
        'passcode': passcode,
        'link': link,
        'whatsapp_url': whatsapp_share_url(room_code, passcode, link),
    }
