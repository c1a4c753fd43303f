import unittest
from types import SimpleNamespace
from unittest.mock import Mock, patch

from mcgate.core.errors import RateLimitedError
from mcgate.services import inventory_queries
from mcgate.services.gateway_common import Caller
from mcgate.services.rate_limits import GatewayRateLimiter
from mcgate.services.rcon_session import CommandResult, ServerTarget

USER = Caller("u1", "user", ServerTarget("mc.example.com", 25575, "pw"))
EMPTY = "Found no elements matching Inventory[{Slot:0b}]"


def _ctx(**overrides):
    values = {"rate_limiter": None, "log_mcgate_action": Mock(), "RCON_INVENTORY_TIMEOUT_SECONDS": 10.0}
    values.update(overrides)
    return SimpleNamespace(**values)


def _reply(text):
    return CommandResult.success(f"Steve has the following entity data: {text}")


class SlotNamingTests(unittest.TestCase):
    def test_slot_names(self):
        self.assertEqual(inventory_queries.slot_name(0), "hotbar.0")
        self.assertEqual(inventory_queries.slot_name(9), "inventory.0")
        self.assertEqual(inventory_queries.slot_name(35), "inventory.26")
        self.assertEqual(inventory_queries.slot_name(103), "armor.head")
        self.assertEqual(inventory_queries.slot_name(150), "weapon.offhand")
        self.assertIsNone(inventory_queries.slot_name(40))

    def test_slot_query_uses_signed_byte_tags(self):
        self.assertEqual(
            inventory_queries.slot_query("Steve", 150, ".id"),
            "data get entity Steve Inventory[{Slot:-106b}].id",
        )
        self.assertEqual(
            inventory_queries.slot_query("Steve", 100, ".count"),
            "data get entity Steve Inventory[{Slot:100b}].count",
        )


class InventoryTests(unittest.TestCase):
    def test_two_phase_read_skips_failed_slot(self):
        calls = []

        def fake_run(ctx, target, commands, command_timeout=None):
            calls.append((list(commands), command_timeout))
            results = []
            for command in commands:
                if "{Slot:0b}].id" in command:
                    results.append(_reply('"minecraft:diamond_sword"'))
                elif "{Slot:0b}].count" in command:
                    results.append(_reply("1"))
                elif "{Slot:9b}].id" in command:
                    results.append(CommandResult(ok=False, error="Timed out", error_kind="command"))
                elif "{Slot:-106b}].id" in command:
                    results.append(_reply('"minecraft:shield"'))
                elif "{Slot:-106b}].count" in command:
                    results.append(_reply("1"))
                elif "{Slot:0b}].components" in command:
                    results.append(_reply('{"minecraft:sharpness": 5}'))
                else:
                    results.append(CommandResult.success(EMPTY))
            return results

        with patch.object(inventory_queries, "run_commands_or_fail", side_effect=fake_run):
            payload = inventory_queries.inventory(_ctx(), USER, "Steve")

        self.assertEqual(len(calls), 2)
        self.assertEqual(len(calls[0][0]), len(inventory_queries.INVENTORY_SLOTS) * 2)
        self.assertEqual(calls[0][1], 10.0)
        self.assertEqual(len(calls[1][0]), 2)
        self.assertTrue(payload["ok"])
        items = payload["items"]
        self.assertEqual([item["slot"] for item in items], [0, 150])
        self.assertEqual(items[0]["label"], "Diamond Sword")
        self.assertEqual(items[0]["enchantments"], "Sharpness 5")
        self.assertEqual(items[0]["slot_name"], "hotbar.0")
        self.assertEqual(items[1]["section"], "offhand")
        self.assertIsNone(items[1]["enchantments"])

    def test_all_failed_reports_error(self):
        def fake_run(ctx, target, commands, command_timeout=None):
            return [CommandResult(ok=False, error="RCON password was rejected", error_kind="auth")] * len(commands)

        with patch.object(inventory_queries, "run_commands_or_fail", side_effect=fake_run):
            payload = inventory_queries.inventory(_ctx(), USER, "Steve")
        self.assertEqual(payload, {"ok": False, "error": "RCON password was rejected", "error_kind": "auth"})

    def test_inventory_bucket_costs_two(self):
        ctx = _ctx(rate_limiter=GatewayRateLimiter({"inventory": 3}))
        with patch.object(inventory_queries, "run_commands_or_fail", side_effect=lambda *a, **k: [CommandResult.success(EMPTY)] * len(a[2])):
            self.assertEqual(inventory_queries.inventory(ctx, USER, "Steve")["items"], [])
            with self.assertRaises(RateLimitedError):
                inventory_queries.inventory(ctx, USER, "Steve")


if __name__ == "__main__":
    unittest.main()
