"""Two-phase player inventory read over the ``inventory`` rate-limit bucket."""

from dataclasses import asdict, dataclass
from typing import Optional

from mcgate.services.gateway_common import failure_payload, log_action, prepare_target, require_player_name
from mcgate.services.rcon_session import run_commands_or_fail
from mcgate.services.response_parsers import (
    is_empty_slot,
    item_label,
    parse_enchantments,
    parse_item_count,
    parse_item_id,
)

DEFAULT_INVENTORY_TIMEOUT_SECONDS = 10.0

HOTBAR_SLOTS = tuple(range(0, 9))
MAIN_SLOTS = tuple(range(9, 36))
ARMOR_SLOT_NAMES = {100: "feet", 101: "legs", 102: "chest", 103: "head"}
OFFHAND_SLOT = 150
INVENTORY_SLOTS = HOTBAR_SLOTS + MAIN_SLOTS + tuple(ARMOR_SLOT_NAMES) + (OFFHAND_SLOT,)

ENCHANTMENTS_PATH = '.components."minecraft:enchantments".levels'


@dataclass
class InventorySlot:
    slot: int
    item_id: str
    label: str
    count: int
    enchantments: Optional[str] = None

    def to_dict(self):
        payload = asdict(self)
        payload["slot_name"] = slot_name(self.slot)
        payload["section"] = slot_section(self.slot)
        return payload


def slot_section(slot):
    if slot in HOTBAR_SLOTS:
        return "hotbar"
    if slot in MAIN_SLOTS:
        return "main"
    if slot in ARMOR_SLOT_NAMES:
        return "armor"
    if slot == OFFHAND_SLOT:
        return "offhand"
    return None


def slot_name(slot):
    """Map an NBT slot number to its ``/item`` slot name, e.g. ``armor.head``."""
    section = slot_section(slot)
    if section == "hotbar":
        return f"hotbar.{slot}"
    if section == "main":
        return f"inventory.{slot - 9}"
    if section == "armor":
        return f"armor.{ARMOR_SLOT_NAMES[slot]}"
    if section == "offhand":
        return "weapon.offhand"
    return None


def slot_query(player, slot, suffix):
    """Build a ``data get`` for one slot, matched by Slot tag, not list index.

    Slot tags are signed bytes, so 150 (offhand) is written as -106b.
    """
    tag = slot - 256 if slot > 127 else slot
    return f"data get entity {player} Inventory[{{Slot:{tag}b}}]{suffix}"


def inventory(ctx, caller, player):
    """Read every slot's id and count, then enchantments for occupied slots.

    Both phases run on one session each. A failed id query for a slot hides
    only that slot; enchantments are best-effort.
    """
    name = require_player_name(player)
    target = prepare_target(ctx, caller, bucket="inventory", cost=2)
    timeout = getattr(ctx, "RCON_INVENTORY_TIMEOUT_SECONDS", DEFAULT_INVENTORY_TIMEOUT_SECONDS)

    phase1_commands = []
    for slot in INVENTORY_SLOTS:
        phase1_commands.append(slot_query(name, slot, ".id"))
        phase1_commands.append(slot_query(name, slot, ".count"))
    phase1 = run_commands_or_fail(ctx, target, phase1_commands, command_timeout=timeout)
    if all(not result.ok for result in phase1):
        payload = failure_payload(phase1[0])
        log_action(ctx, "inventory", command=name, rejection_message=payload["error"])
        return payload

    occupied = []
    for index, slot in enumerate(INVENTORY_SLOTS):
        id_result = phase1[index * 2]
        count_result = phase1[index * 2 + 1]
        if not id_result.ok or is_empty_slot(id_result.stdout):
            continue
        item_id = parse_item_id(id_result.stdout)
        if not item_id:
            continue
        count = parse_item_count(count_result.stdout) if count_result.ok else 1
        occupied.append(InventorySlot(slot=slot, item_id=item_id, label=item_label(item_id), count=count))

    if occupied:
        enchant_commands = [slot_query(name, item.slot, ENCHANTMENTS_PATH) for item in occupied]
        phase2 = run_commands_or_fail(ctx, target, enchant_commands, command_timeout=timeout)
        for item, result in zip(occupied, phase2):
            if result.ok and not is_empty_slot(result.stdout):
                item.enchantments = parse_enchantments(result.stdout)

    occupied.sort(key=lambda item: item.slot)
    return {"ok": True, "player": name, "items": [item.to_dict() for item in occupied]}
