"""
Voice Catalog

Code-defined voices: the fallback base voice list, the predefined composite
voices and the rule that turns a synthesis voice tag into a profile.
"""

from collections.abc import Sequence

from regen.core.models import VoiceProfile

COMPOSITE_SEPARATOR = "+"

# Spoken when a new composite is checked against the synthesis service
VALIDATION_TEXT = "Testing combined voice"

SAMPLE_TEXT = "Hello! This is a sample of my voice. I can help you with audio generation."

ACCENTS = {"a": "American", "b": "British"}
GENDERS = {"f": "Female", "m": "Male"}


def composite_id(voice_ids: Sequence[str]) -> str:
    """Derive a composite id from base voice tags, keeping selection order."""
    return COMPOSITE_SEPARATOR.join(voice_ids)


def decode_voice_tag(tag: str) -> VoiceProfile:
    """
    Build a base voice profile from a tag such as `af_heart`.

    The first character of the first segment selects the accent, the second
    the gender. The capitalized second segment is the display name.
    """
    parts = tag.split("_")
    prefix = parts[0]

    accent = ACCENTS.get(prefix[:1], "Other")
    gender = GENDERS.get(prefix[1:2], "Unknown")

    if len(parts) > 1 and parts[1]:
        name = parts[1][:1].upper() + parts[1][1:]
    else:
        name = tag

    return VoiceProfile(id=tag, name=name, gender=gender, accent=accent, is_base=True)


# ══════════════════════════════════════════════════════════════
# Base Voices
# ══════════════════════════════════════════════════════════════

# Used only when the synthesis service cannot list its voices
FALLBACK_VOICE_TAGS = (
    "af_heart",
    "af_sky",
    "af_river",
    "am_rock",
    "am_bolt",
    "am_marble",
    "bf_emma",
    "bf_isabella",
    "bm_george",
    "bm_lewis",
)

FALLBACK_BASE_VOICES: tuple[VoiceProfile, ...] = tuple(
    decode_voice_tag(tag) for tag in FALLBACK_VOICE_TAGS
)


# ══════════════════════════════════════════════════════════════
# Predefined Composites
# ══════════════════════════════════════════════════════════════


def _predefined(voice_id: str, name: str, gender: str, accent: str, description: str) -> VoiceProfile:
    return VoiceProfile(
        id=voice_id,
        name=name,
        gender=gender,
        accent=accent,
        is_base=False,
        is_predefined=True,
        components=voice_id.split(COMPOSITE_SEPARATOR),
        description=description,
    )


PREDEFINED_COMPOSITES: tuple[VoiceProfile, ...] = (
    # ──────────────────────────────────────────────────────────
    # Pairs
    # ──────────────────────────────────────────────────────────
    _predefined("af_heart+af_sky", "Harmony", "Female", "American", "Warm and clear female voice"),
    _predefined("af_heart+af_river", "Serenity", "Female", "American", "Gentle and flowing female voice"),
    _predefined("am_adam+am_echo", "Thunder", "Male", "American", "Strong and confident male voice"),
    _predefined("bf_emma+bf_lily", "Royal", "Female", "British", "Elegant and sophisticated British female"),
    _predefined("bm_george+bm_lewis", "Gentleman", "Male", "British", "Distinguished British gentleman"),
    _predefined(
        "af_heart+am_adam",
        "Dynamic Duo",
        "Mixed",
        "American",
        "Balanced mix of warm female and strong male",
    ),
    # ──────────────────────────────────────────────────────────
    # Trios
    # ──────────────────────────────────────────────────────────
    _predefined("af_heart+af_river+af_sky", "Chorus", "Female", "American", "Rich harmonious female voice"),
    _predefined("am_adam+am_echo+am_michael", "Commander", "Male", "American", "Deep authoritative male voice"),
    _predefined("bf_emma+af_heart+bm_george", "Diplomat", "Mixed", "International", "Refined international blend"),
    _predefined("af_bella+am_michael+bf_emma", "Executive", "Mixed", "Professional", "Professional and authoritative"),
)

PREDEFINED_IDS = frozenset(v.id for v in PREDEFINED_COMPOSITES)
