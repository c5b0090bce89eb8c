# Configuration for the gamebook engine
#
# SECURITY IMPORTANT:
# 1. Secrets come from environment variables only - DO NOT hardcode API keys
# 2. A .env file for local development must stay out of version control

import os


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _optional_int_env(name: str):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return int(raw)


# OpenAI API Configuration (only the narrative interpreter needs it)
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
OPENAI_MAX_TOKENS = _int_env("OPENAI_MAX_TOKENS", 1500)
OPENAI_TEMPERATURE = float(
    os.getenv("OPENAI_TEMPERATURE", "0.1")
)  # Low temperature for consistent action extraction

# Starting Action Sheet
STARTING_ENDURANCE = _int_env("LW_STARTING_ENDURANCE", 25)
STARTING_COMBAT_SKILL = _int_env("LW_STARTING_COMBAT_SKILL", 15)
STARTING_GOLD = _int_env("LW_STARTING_GOLD", 0)

# Engine rules
POUCH_CAPACITY = _int_env("LW_POUCH_CAPACITY", 50)
MAX_COMBAT_ROUNDS = _int_env("LW_MAX_COMBAT_ROUNDS", 200)
DICE_SEED = _optional_int_env("LW_DICE_SEED")  # unset = unseeded Random Number Table

# Sections whose text is never sent to the interpreter
_DEFAULT_SKIP_SECTIONS = [
    140, 56, 85, 215, 14, 195, 106, 157, 261, 6, 132, 64, 16, 214, 125, 27, 250,
    186, 8, 28, 201, 192, 171, 265, 142, 68, 35, 70,
    30, 194, 264,  # refugees
    78,  # merchants' caravan
    102, 284, 65, 104, 26, 100, 257, 266, 209, 317, 61, 268, 288, 292,  # graveyard
    135, 218, 75, 163, 321, 273, 179, 318,  # river
    129, 3, 196, 332, 350, 217, 198, 152, 60,  # Holmgard
]

_skip_env = os.getenv("LW_SKIP_INTERPRET_SECTIONS")
SKIP_INTERPRET_SECTIONS = frozenset(
    int(part) for part in _skip_env.split(",") if part.strip()
) if _skip_env is not None else frozenset(_DEFAULT_SKIP_SECTIONS)

# Example .env file content:
# OPENAI_API_KEY=your-actual-api-key-here
# OPENAI_MODEL=gpt-4o-mini
# LW_DICE_SEED=42
