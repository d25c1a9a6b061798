"""Default question bank."""

DEFAULT_PROMPTS = [
    "What is the strangest thing you have ever eaten?",
    "What is your guilty-pleasure movie or series?",
    "What is your worst habit?",
    "What is the last dream you remember?",
    "If you could have one superpower, what would it be?",
    "Which book or game do you recommend the most?",
    "If you were an animal, which one would you be and why?",
    "What harmless lie do you tell regularly?",
    "What is your most useless talent?",
    "What is the biggest kitchen disaster you have ever caused?",
    "If you could live in any period of history, which would it be?",
    "What is your most irrational fear?",
    "Which song are you embarrassed to like?",
    "What annoys you instantly?",
    "What is the most impulsive thing you have ever done?",
    "What is your favourite place in the world and why?",
    "What is your least-known skill?",
    "What makes you laugh uncontrollably?",
    "What is the strangest advice you have ever received?",
    "If you had a clone, what would it do all day?",
    "What is the most precious object you own?",
    "What is the biggest risk you have ever taken?",
    "Which celebrity do you think smells nice?",
    "What is your weirdest quirk?",
    "What would you do if you won the lottery today?",
    "What was your favourite dish as a child?",
    "What do you find hardest to forgive?",
    "What is your philosophy of life in three words?",
    "If you could talk to one person who has died, who would it be?",
    "What is the most beautiful thing you have ever seen?",
]
