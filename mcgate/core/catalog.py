"""Closed command tables: item catalog, kits, gamerules, quick actions."""

from dataclasses import dataclass
from enum import Enum


DIFFICULTIES = ("peaceful", "easy", "normal", "hard")

GAMERULES = (
    "keepInventory",
    "mobGriefing",
    "doDaylightCycle",
    "doWeatherCycle",
    "pvp",
    "doFireTick",
    "doMobSpawning",
    "naturalRegeneration",
    "announceAdvancements",
    "commandBlockOutput",
    "sendCommandFeedback",
    "showDeathMessages",
    "doImmediateRespawn",
    "forgiveDeadPlayers",
    "universalAnger",
)

SERVER_CONTROL_COMMANDS = ("save-all", "stop")

ITEM_CATALOG = {
    "tools": (
        "wooden_pickaxe", "stone_pickaxe", "iron_pickaxe", "golden_pickaxe", "diamond_pickaxe",
        "netherite_pickaxe", "iron_axe", "diamond_axe", "netherite_axe", "iron_shovel",
        "diamond_shovel", "netherite_shovel", "diamond_hoe", "shears", "flint_and_steel",
        "fishing_rod", "compass", "clock", "spyglass", "lead", "name_tag", "bucket",
        "water_bucket", "lava_bucket", "brush",
    ),
    "combat": (
        "wooden_sword", "stone_sword", "iron_sword", "golden_sword", "diamond_sword",
        "netherite_sword", "mace", "bow", "crossbow", "trident", "arrow", "spectral_arrow",
        "shield", "totem_of_undying",
    ),
    "armor": (
        "leather_helmet", "leather_chestplate", "leather_leggings", "leather_boots",
        "chainmail_helmet", "chainmail_chestplate", "chainmail_leggings", "chainmail_boots",
        "iron_helmet", "iron_chestplate", "iron_leggings", "iron_boots",
        "diamond_helmet", "diamond_chestplate", "diamond_leggings", "diamond_boots",
        "netherite_helmet", "netherite_chestplate", "netherite_leggings", "netherite_boots",
        "turtle_helmet", "elytra",
    ),
    "food": (
        "apple", "golden_apple", "enchanted_golden_apple", "bread", "cooked_beef",
        "cooked_porkchop", "cooked_chicken", "cooked_mutton", "cooked_salmon", "cooked_cod",
        "baked_potato", "carrot", "golden_carrot", "pumpkin_pie", "cake", "cookie",
        "melon_slice", "sweet_berries", "honey_bottle",
    ),
    "blocks": (
        "dirt", "grass_block", "stone", "cobblestone", "stone_bricks", "deepslate_bricks",
        "oak_planks", "spruce_planks", "birch_planks", "oak_log", "spruce_log", "birch_log",
        "glass", "sand", "sandstone", "bricks", "quartz_block", "obsidian", "terracotta",
        "white_wool", "white_concrete", "scaffolding", "ladder", "torch", "lantern",
        "glowstone", "sea_lantern",
    ),
    "utility": (
        "crafting_table", "furnace", "blast_furnace", "smoker", "chest", "barrel",
        "shulker_box", "ender_chest", "anvil", "enchanting_table", "bookshelf",
        "brewing_stand", "beacon", "respawn_anchor", "white_bed", "hopper",
        "firework_rocket", "ender_pearl", "experience_bottle", "saddle", "map",
    ),
    "redstone": (
        "redstone", "redstone_torch", "repeater", "comparator", "piston", "sticky_piston",
        "observer", "lever", "stone_button", "tripwire_hook", "daylight_detector",
        "dispenser", "dropper", "note_block", "tnt", "rail", "powered_rail", "minecart",
    ),
    "materials": (
        "coal", "iron_ingot", "gold_ingot", "copper_ingot", "diamond", "emerald",
        "netherite_ingot", "lapis_lazuli", "quartz", "amethyst_shard", "string",
        "feather", "leather", "bone", "gunpowder", "slime_ball", "blaze_rod",
        "ender_eye", "book", "paper", "stick",
    ),
}

VALID_ITEM_IDS = frozenset(item for items in ITEM_CATALOG.values() for item in items)


def normalize_item_id(raw):
    """Return a bare catalog id (``diamond_sword``) or None when unknown."""
    candidate = str(raw or "").strip().lower()
    if candidate.startswith("minecraft:"):
        candidate = candidate[len("minecraft:"):]
    return candidate if candidate in VALID_ITEM_IDS else None


@dataclass(frozen=True)
class Kit:
    """One kit: a label and the ``give`` arguments issued per item."""
    kit_id: str
    label: str
    items: tuple
    admin_only: bool = False

    def give_commands(self, player):
        return [f"give {player} minecraft:{item_spec} {count}" for item_spec, count in self.items]


KITS = {
    kit.kit_id: kit
    for kit in (
        Kit(
            "starter",
            "Starter",
            (
                ("iron_sword", 1),
                ("iron_pickaxe", 1),
                ("iron_axe", 1),
                ("iron_shovel", 1),
                ("torch", 64),
                ("cooked_beef", 64),
                ("iron_helmet", 1),
                ("iron_chestplate", 1),
                ("iron_leggings", 1),
                ("iron_boots", 1),
                ("crafting_table", 1),
                ("furnace", 1),
                ("shield", 1),
            ),
        ),
        Kit(
            "builder",
            "Builder",
            (
                ("oak_planks", 64),
                ("stone_bricks", 64),
                ("glass", 64),
                ("oak_log", 64),
                ("cobblestone", 64),
                ("shears", 1),
                ("diamond_axe[minecraft:enchantments={efficiency:5,unbreaking:3,mending:1}]", 1),
                ("scaffolding", 32),
                ("lantern", 16),
            ),
        ),
        Kit(
            "explorer",
            "Explorer",
            (
                ("diamond_sword[minecraft:enchantments={sharpness:3,unbreaking:3}]", 1),
                ("bow[minecraft:enchantments={power:3,unbreaking:3}]", 1),
                ("arrow", 64),
                ("iron_helmet", 1),
                ("iron_chestplate", 1),
                ("iron_leggings", 1),
                ("iron_boots", 1),
                ("compass", 1),
                ("clock", 1),
                ("ender_pearl", 16),
                ("elytra", 1),
                ("firework_rocket", 8),
            ),
        ),
        Kit(
            "combat",
            "Combat",
            (
                ("diamond_sword[minecraft:enchantments={sharpness:5,fire_aspect:2,looting:3,unbreaking:3}]", 1),
                ("bow[minecraft:enchantments={power:5,infinity:1,unbreaking:3,flame:1}]", 1),
                ("arrow", 1),
                ("diamond_helmet[minecraft:enchantments={protection:4,unbreaking:3}]", 1),
                ("diamond_chestplate[minecraft:enchantments={protection:4,unbreaking:3}]", 1),
                ("diamond_leggings[minecraft:enchantments={protection:4,unbreaking:3}]", 1),
                ("diamond_boots[minecraft:enchantments={protection:4,feather_falling:4,unbreaking:3}]", 1),
                ("golden_apple", 8),
                ("totem_of_undying", 1),
            ),
        ),
        Kit(
            "admin",
            "Admin",
            (
                ("netherite_sword[minecraft:enchantments={sharpness:5,fire_aspect:2,looting:3,unbreaking:3,mending:1}]", 1),
                ("netherite_pickaxe[minecraft:enchantments={efficiency:5,fortune:3,unbreaking:3,mending:1}]", 1),
                ("netherite_helmet[minecraft:enchantments={protection:4,unbreaking:3,mending:1}]", 1),
                ("netherite_chestplate[minecraft:enchantments={protection:4,unbreaking:3,mending:1}]", 1),
                ("netherite_leggings[minecraft:enchantments={protection:4,unbreaking:3,mending:1}]", 1),
                ("netherite_boots[minecraft:enchantments={protection:4,feather_falling:4,unbreaking:3,mending:1}]", 1),
                ("elytra", 1),
                ("golden_apple", 64),
                ("totem_of_undying", 3),
                ("shulker_box", 1),
                ("beacon", 1),
            ),
            admin_only=True,
        ),
    )
}


# ----------------------------
# Quick actions
# ----------------------------
class QuickAction(str, Enum):
    DAY = "day"
    NIGHT = "night"
    CLEAR_WEATHER = "clear_weather"
    STORM = "storm"
    CREATIVE = "creative"
    SURVIVAL = "survival"
    ADVENTURE = "adventure"
    FLY = "fly"
    HEAL = "heal"
    NIGHT_VISION = "night_vision"
    SPEED = "speed"
    INVISIBILITY = "invisibility"
    JUMP = "jump"
    STRENGTH = "strength"
    HASTE = "haste"
    CLEAR_FX = "clear_fx"


@dataclass(frozen=True)
class QuickActionDef:
    """Command templates for one quick action.

    ``activated`` is True/False for actions with a fixed outcome and None for
    plain one-shot actions. Toggles (fly) read it back from the reply.
    """
    label: str
    commands: tuple
    needs_player: bool = True
    activated: object = None
    toggles: bool = False

    def render(self, player):
        return [template.format(player=player) for template in self.commands]


def _effect(label, effect_id, seconds, amplifier):
    return QuickActionDef(label, (f"effect give {{player}} minecraft:{effect_id} {seconds} {amplifier}",), activated=True)


QUICK_ACTIONS = {
    QuickAction.DAY: QuickActionDef("Day", ("time set day",), needs_player=False),
    QuickAction.NIGHT: QuickActionDef("Night", ("time set night",), needs_player=False),
    QuickAction.CLEAR_WEATHER: QuickActionDef("Clear sky", ("weather clear 6000",), needs_player=False),
    QuickAction.STORM: QuickActionDef("Storm", ("weather thunder 6000",), needs_player=False),
    QuickAction.CREATIVE: QuickActionDef("Creative", ("gamemode creative {player}",)),
    QuickAction.SURVIVAL: QuickActionDef("Survival", ("gamemode survival {player}",)),
    QuickAction.ADVENTURE: QuickActionDef("Adventure", ("gamemode adventure {player}",)),
    QuickAction.FLY: QuickActionDef("Fly", ("fly {player}",), toggles=True),
    QuickAction.HEAL: QuickActionDef("Heal", ("heal {player}", "feed {player}")),
    QuickAction.NIGHT_VISION: _effect("Night Vision", "night_vision", 300, 1),
    QuickAction.SPEED: _effect("Speed", "speed", 120, 3),
    QuickAction.INVISIBILITY: _effect("Invisible", "invisibility", 120, 1),
    QuickAction.JUMP: _effect("Super Jump", "jump_boost", 120, 5),
    QuickAction.STRENGTH: _effect("Strength", "strength", 120, 2),
    QuickAction.HASTE: _effect("Haste", "haste", 120, 2),
    QuickAction.CLEAR_FX: QuickActionDef("Clear FX", ("effect clear {player}",), activated=False),
}

# Quick actions whose state can be read back from ``active_effects``.
EFFECT_IDS = {
    "night_vision": "minecraft:night_vision",
    "speed": "minecraft:speed",
    "invisibility": "minecraft:invisibility",
    "jump": "minecraft:jump_boost",
    "strength": "minecraft:strength",
    "haste": "minecraft:haste",
}


def parse_quick_action(raw):
    """Return the QuickAction for ``raw`` or None when it is not in the set."""
    try:
        return QuickAction(str(raw or "").strip().lower())
    except ValueError:
        return None
