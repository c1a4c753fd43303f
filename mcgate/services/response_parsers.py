"""Defensive parsers for plain-text RCON replies.

Reply wording varies across vanilla, Paper/Spigot and Geyser-bridged servers
and across Minecraft versions, so every parser here returns ``None`` (or an
empty container) on text it does not recognise instead of raising.
"""

import math
import re

GAMEMODES = {
    0: "survival",
    1: "creative",
    2: "adventure",
    3: "spectator",
}

DIMENSIONS = {
    "minecraft:overworld": "Overworld",
    "minecraft:the_nether": "Nether",
    "minecraft:the_end": "The End",
}

WEATHER_STATES = ("thunder", "rain", "clear")

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")
_FORMAT_CODE_RE = re.compile(r"§.", re.DOTALL)
_NUMBER = r"-?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?"
_NBT_SCALAR_RE = re.compile(rf"({_NUMBER})[bBsSlLfFdD]?\s*$")
_NBT_INT_RE = re.compile(r"(-?\d+)[bBsSlL]?\s*$")
_POS_RE = re.compile(
    rf"\[\s*({_NUMBER})[dDfF]?\s*,\s*({_NUMBER})[dDfF]?\s*,\s*({_NUMBER})[dDfF]?\s*\]"
)
_INT_ARRAY_UUID_RE = re.compile(r"\[I;\s*(-?\d+),\s*(-?\d+),\s*(-?\d+),\s*(-?\d+)\s*\]")
_LIST_RE = re.compile(r"There are (\d+)\s+(?:of a max(?:imum)?(?:\s+of)?|out of maximum)\s+(\d+)", re.IGNORECASE)
_LIST_NAMES_RE = re.compile(r"online[.:]+\s*([\s\S]+)$", re.IGNORECASE)
_PAPER_VERSION_RE = re.compile(r"running Paper version (\d+\.\d+[\d.]*)")
_MC_VERSION_RE = re.compile(r"\(MC:\s*([^)]+)\)")
_PLAIN_VERSION_RE = re.compile(r"version\s+(\S+)")
_TPS_RE = re.compile(r":\s*\*?(\d+(?:\.\d+)?)")
_GAMERULE_RE = re.compile(r"(?:set to|is currently set to):\s*(\S+)", re.IGNORECASE)
_DIFFICULTY_RE = re.compile(r"difficulty is\s+(\w+)", re.IGNORECASE)
_BANNED_BY_RE = re.compile(r"(\.?[A-Za-z0-9_]{1,16}) was banned by ")
_TIME_RE = re.compile(r"The time is\s+(-?\d+)", re.IGNORECASE)
_DIMENSION_RE = re.compile(r'"([a-z0-9_.-]+:[a-z0-9_/.-]+)"')
_ITEM_ID_RE = re.compile(r'"(minecraft:[^"]+)"')
_ITEM_COUNT_RE = re.compile(r"entity data:\s*(\d+)")
_ENCHANT_BODY_RE = re.compile(r"\{([^}]*)\}")
_ENCHANT_ENTRY_RE = re.compile(r'"?minecraft:(\w+)"?\s*:\s*(\d+)')
_MAY_FLY_RE = re.compile(r"mayfly:\s*1b")
_REJECTION_RE = re.compile(
    r"^(?:Unknown or incomplete command|Unknown command|Incorrect argument for command"
    r"|No player was found|No entity was found|That player does not exist)",
    re.IGNORECASE,
)
_GEYSER_PREFIX_RE = re.compile(r"^\w+:\s*")

NO_ELEMENTS_MARKER = "Found no elements"


def strip_formatting(text):
    """Strip ANSI and section-format control codes from RCON output."""
    cleaned = text or ""
    cleaned = _ANSI_RE.sub("", cleaned)
    cleaned = _FORMAT_CODE_RE.sub("", cleaned)
    return cleaned


def looks_like_rejection(stdout):
    """Return True when a reply is the server refusing the command."""
    return bool(_REJECTION_RE.match((stdout or "").strip()))


# ----------------------------
# Server-level replies
# ----------------------------
def parse_player_list(raw):
    """Parse ``list`` output into online/max counts and player names.

    Older servers say "There are 3 of a max of 20 players online: a, b, c";
    Paper 1.21.4+ says "There are 3 out of maximum 20 players online."
    Unrecognised text yields zero counts.
    """
    text = raw or ""
    match = _LIST_RE.search(text)
    if not match:
        return {"online": 0, "max": 0, "players": []}
    online = int(match.group(1))
    players = []
    names = _LIST_NAMES_RE.search(text)
    if names and online > 0:
        for chunk in names.group(1).split(","):
            # Geyser prefixes bridged names, e.g. "Geyser: Steve".
            name = _GEYSER_PREFIX_RE.sub("", chunk.strip()).strip()
            if name:
                players.append(name)
    return {"online": online, "max": int(match.group(2)), "players": players}


def parse_version(raw):
    """Extract the Minecraft version from ``version`` output.

    Only the first line is inspected; newer Paper builds print a misleading
    "Previous version: ... (MC: x)" note on a later line.
    """
    first_line = (raw or "").split("\n")[0].strip()
    match = _PAPER_VERSION_RE.search(first_line)
    if match:
        return match.group(1)
    match = _MC_VERSION_RE.search(first_line)
    if match:
        return match.group(1).strip()
    match = _PLAIN_VERSION_RE.search(first_line)
    if match:
        return match.group(1).strip()
    return first_line[:60] or "Unknown"


def parse_tps(raw):
    """Return the 1-minute TPS from Paper/Spigot ``tps`` output, capped at 20."""
    # Anchor past the colon: "TPS from last 1m, 5m, 15m: 20.0, ..." has a "1" before it.
    match = _TPS_RE.search(raw or "")
    if not match:
        return None
    try:
        value = float(match.group(1))
    except ValueError:
        return None
    if math.isnan(value):
        return None
    return min(value, 20.0)


def parse_time_of_day(raw):
    """Parse ``time query daytime`` output into ticks (0-23999)."""
    match = _TIME_RE.search(raw or "")
    if not match:
        return None
    return int(match.group(1)) % 24000


def parse_weather(raw):
    """Return clear/rain/thunder when the reply names a weather state."""
    lowered = (raw or "").lower()
    if not lowered or "unknown" in lowered or "incorrect" in lowered:
        return None
    for state in WEATHER_STATES:
        if state in lowered:
            return state
    return None


def parse_difficulty(raw):
    """Parse "The difficulty is Easy" into a lowercase difficulty name."""
    match = _DIFFICULTY_RE.search(raw or "")
    return match.group(1).lower() if match else None


def parse_gamerule_value(raw):
    """Parse "Gamerule keepInventory is currently set to: false"."""
    match = _GAMERULE_RE.search(raw or "")
    return match.group(1) if match else None


def parse_ban_list(raw):
    """Return banned player names from ``banlist players`` output."""
    text = (raw or "").strip()
    if not text or "There are no bans" in text:
        return []
    # Vanilla may put every entry on one line:
    # "There are 2 ban(s):Steve was banned by Server: Banned by an operator.Alex was banned by ..."
    names = []
    for match in _BANNED_BY_RE.finditer(text):
        name, start = match.group(1), match.start(1)
        # A dot glued to the previous reason ends that reason; it is not a Bedrock prefix.
        if name.startswith(".") and start and text[start - 1] not in " \n:":
            name = name[1:]
        names.append(name)
    if names:
        return names
    for line in text.split("\n")[1:]:
        entry = re.sub(r"^-\s*", "", line.strip())
        name = entry.split(":")[0].strip()
        if name:
            names.append(name)
    return names


def parse_whitelist(raw):
    """Return names from "There are N whitelisted player(s): a, b"."""
    match = re.search(r":\s*(.+)$", (raw or "").strip(), re.DOTALL)
    if not match:
        return []
    return [name.strip() for name in match.group(1).split(",") if name.strip()]


# ----------------------------
# NBT scalar/vector replies from ``data get entity``
# ----------------------------
def parse_nbt_float(raw):
    """Parse a trailing NBT number such as ``18.0f`` or ``0.25d``."""
    match = _NBT_SCALAR_RE.search((raw or "").strip())
    if not match:
        return None
    try:
        value = float(match.group(1))
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def parse_nbt_int(raw):
    """Parse a trailing NBT integer such as ``20``, ``1b`` or ``-88``."""
    match = _NBT_INT_RE.search((raw or "").strip())
    return int(match.group(1)) if match else None


def parse_position(raw):
    """Parse ``[142.3d, 64.0d, -88.7d]`` into an x/y/z mapping."""
    match = _POS_RE.search(raw or "")
    if not match:
        return None
    try:
        x, y, z = (float(match.group(idx)) for idx in (1, 2, 3))
    except ValueError:
        return None
    if not all(math.isfinite(value) for value in (x, y, z)):
        return None
    return {"x": x, "y": y, "z": z}


def parse_spawn_position(x_raw, y_raw, z_raw):
    """Combine SpawnX/SpawnY/SpawnZ replies; any missing axis yields None."""
    x = parse_nbt_int(x_raw)
    y = parse_nbt_int(y_raw)
    z = parse_nbt_int(z_raw)
    if x is None or y is None or z is None:
        return None
    return {"x": x, "y": y, "z": z}


def parse_gamemode(raw):
    """Map a trailing 0-3 integer to a gamemode name."""
    value = parse_nbt_int(raw)
    if value is None:
        return None
    return GAMEMODES.get(value)


def parse_dimension(raw):
    """Map a quoted dimension id to a display name."""
    match = _DIMENSION_RE.search(raw or "")
    if not match:
        return None
    dimension_id = match.group(1)
    if dimension_id in DIMENSIONS:
        return DIMENSIONS[dimension_id]
    return dimension_id.split(":", 1)[1].replace("_", " ")


def parse_uuid(raw):
    """Rebuild a canonical UUID string from an NBT ``[I; a, b, c, d]`` array."""
    match = _INT_ARRAY_UUID_RE.search(raw or "")
    if not match:
        return None
    hex_text = "".join(
        f"{int(match.group(idx)) & 0xFFFFFFFF:08x}" for idx in (1, 2, 3, 4)
    )
    return "-".join(
        (hex_text[0:8], hex_text[8:12], hex_text[12:16], hex_text[16:20], hex_text[20:32])
    )


# ----------------------------
# Inventory replies
# ----------------------------
def is_empty_slot(raw):
    """Return True for "Found no elements matching ..." replies."""
    return NO_ELEMENTS_MARKER in (raw or "")


def parse_item_id(raw):
    match = _ITEM_ID_RE.search(raw or "")
    return match.group(1) if match else None


def parse_item_count(raw):
    """Parse a stack count, defaulting to 1 when the reply has none."""
    match = _ITEM_COUNT_RE.search(raw or "")
    if match:
        return int(match.group(1))
    value = parse_nbt_int(raw)
    return value if value is not None and value > 0 else 1


def _title_words(snake):
    return " ".join(word[:1].upper() + word[1:] for word in snake.split("_") if word)


def item_label(item_id):
    """Turn ``minecraft:diamond_sword`` into ``Diamond Sword``."""
    return _title_words((item_id or "").replace("minecraft:", ""))


def parse_enchantments(raw):
    """Render an enchantment level map as ``Sharpness 5 · Unbreaking 3``."""
    match = _ENCHANT_BODY_RE.search(raw or "")
    if not match:
        return None
    parts = []
    for entry in match.group(1).split(","):
        found = _ENCHANT_ENTRY_RE.search(entry)
        if found:
            parts.append(f"{_title_words(found.group(1))} {found.group(2)}")
    return " · ".join(parts) or None


# ----------------------------
# Effects/abilities replies
# ----------------------------
def parse_active_effects(raw, effect_ids):
    """Return keys from ``effect_ids`` whose quoted id appears in the reply."""
    text = raw or ""
    return [key for key, effect_id in effect_ids.items() if f'"{effect_id}"' in text]


def parse_may_fly(raw):
    return bool(_MAY_FLY_RE.search(raw or ""))
