import unittest

from mcgate.core.catalog import EFFECT_IDS
from mcgate.services import response_parsers as parsers


class ServerReplyParserTests(unittest.TestCase):
    def test_player_list_legacy_format_strips_geyser_prefix(self):
        parsed = parsers.parse_player_list("There are 2 of a max of 20 players online: Steve, Geyser: Alex")
        self.assertEqual(parsed, {"online": 2, "max": 20, "players": ["Steve", "Alex"]})

    def test_player_list_paper_format(self):
        parsed = parsers.parse_player_list("There are 0 out of maximum 20 players online.")
        self.assertEqual(parsed, {"online": 0, "max": 20, "players": []})

    def test_player_list_unrecognised(self):
        self.assertEqual(parsers.parse_player_list("Unknown command"), {"online": 0, "max": 0, "players": []})
        self.assertEqual(parsers.parse_player_list(None)["players"], [])

    def test_version_uses_first_line_only(self):
        raw = (
            "This server is running Paper version 1.21.4-211-main@abc (MC: 1.21.4)\n"
            "Previous version: 1.20.6-100 (MC: 1.20.6)"
        )
        self.assertEqual(parsers.parse_version(raw), "1.21.4")
        self.assertEqual(parsers.parse_version("Server version 1.20.1"), "1.20.1")
        self.assertEqual(parsers.parse_version(""), "Unknown")

    def test_tps(self):
        self.assertEqual(parsers.parse_tps("TPS from last 1m, 5m, 15m: *20.0, 19.98, 19.97"), 20.0)
        self.assertEqual(parsers.parse_tps("TPS from last 1m, 5m, 15m: 17.5, 18.0, 19.0"), 17.5)
        self.assertEqual(parsers.parse_tps("TPS from last 1m, 5m, 15m: 21.3, 20.0, 20.0"), 20.0)
        self.assertIsNone(parsers.parse_tps("Unknown or incomplete command"))

    def test_time_weather_difficulty_gamerule(self):
        self.assertEqual(parsers.parse_time_of_day("The time is 30000"), 6000)
        self.assertIsNone(parsers.parse_time_of_day("nope"))
        self.assertEqual(parsers.parse_weather("The weather is rain"), "rain")
        self.assertIsNone(parsers.parse_weather("Unknown or incomplete command, see below for error"))
        self.assertEqual(parsers.parse_difficulty("The difficulty is Hard"), "hard")
        self.assertEqual(
            parsers.parse_gamerule_value("Gamerule keepInventory is currently set to: false"),
            "false",
        )
        self.assertIsNone(parsers.parse_gamerule_value(""))

    def test_ban_list_forms(self):
        multi = (
            "There are 2 ban(s):\n"
            "Steve was banned by Server: Banned by an operator.\n"
            "Alex was banned by Admin: griefing"
        )
        self.assertEqual(parsers.parse_ban_list(multi), ["Steve", "Alex"])
        single = "There are 1 ban(s):Steve was banned by Server: Banned by an operator."
        self.assertEqual(parsers.parse_ban_list(single), ["Steve"])
        self.assertEqual(parsers.parse_ban_list("There are no bans"), [])

    def test_ban_list_several_entries_on_one_line(self):
        raw = (
            "There are 3 ban(s):Steve was banned by Server: Banned by an operator."
            "Alex was banned by Server: griefing .Bedrock_1 was banned by Admin: x"
        )
        self.assertEqual(parsers.parse_ban_list(raw), ["Steve", "Alex", ".Bedrock_1"])

    def test_ban_list_dash_entries(self):
        raw = "There are 2 ban(s):\n- Steve: griefing\n- Alex"
        self.assertEqual(parsers.parse_ban_list(raw), ["Steve", "Alex"])

    def test_whitelist(self):
        self.assertEqual(parsers.parse_whitelist("There are 2 whitelisted player(s): Steve, Alex"), ["Steve", "Alex"])
        self.assertEqual(parsers.parse_whitelist("There are no whitelisted players"), [])

    def test_strip_formatting_and_rejections(self):
        self.assertEqual(parsers.strip_formatting("\x1b[32m§aHello§r\x1b[0m"), "Hello")
        self.assertTrue(parsers.looks_like_rejection("Unknown or incomplete command, see below for error"))
        self.assertTrue(parsers.looks_like_rejection("No player was found"))
        self.assertFalse(parsers.looks_like_rejection("Banned Steve: griefing"))


class NbtReplyParserTests(unittest.TestCase):
    def test_scalars_tolerate_suffixes(self):
        self.assertEqual(parsers.parse_nbt_float("Steve has the following entity data: 18.0f"), 18.0)
        self.assertEqual(parsers.parse_nbt_float("Steve has the following entity data: 0.25d"), 0.25)
        self.assertEqual(parsers.parse_nbt_int("Steve has the following entity data: 1b"), 1)
        self.assertEqual(parsers.parse_nbt_int("Steve has the following entity data: -88"), -88)
        self.assertIsNone(parsers.parse_nbt_float("No entity was found"))

    def test_position_and_spawn(self):
        self.assertEqual(
            parsers.parse_position("Steve has the following entity data: [142.3d, 64.0d, -88.7d]"),
            {"x": 142.3, "y": 64.0, "z": -88.7},
        )
        self.assertIsNone(parsers.parse_position("No entity was found"))
        self.assertEqual(
            parsers.parse_spawn_position("data: 10", "data: 70", "data: -5"),
            {"x": 10, "y": 70, "z": -5},
        )
        self.assertIsNone(parsers.parse_spawn_position("data: 10", "", "data: -5"))

    def test_gamemode_and_dimension(self):
        self.assertEqual(parsers.parse_gamemode("Steve has the following entity data: 1"), "creative")
        self.assertIsNone(parsers.parse_gamemode("Steve has the following entity data: 9"))
        self.assertEqual(parsers.parse_dimension('Steve has the following entity data: "minecraft:the_nether"'), "Nether")
        self.assertEqual(parsers.parse_dimension('data: "mymod:deep_dark_realm"'), "deep dark realm")

    def test_uuid_from_int_array(self):
        raw = "Steve has the following entity data: [I; -1, 0, 1, 2]"
        self.assertEqual(parsers.parse_uuid(raw), "ffffffff-0000-0000-0000-000100000002")
        raw = "data: [I; 1164140470, -1232454372, -1626434612, 1090316426]"
        self.assertEqual(parsers.parse_uuid(raw), "45635fb6-b68a-3d1c-9f0e-93cc40fce88a")
        raw = "data: [I;-1867949367, -1412099365, -1979710043, -1227887240]"
        self.assertEqual(parsers.parse_uuid(raw), "90a95ac9-abd5-12db-8a00-05a5b6cfed78")
        self.assertIsNone(parsers.parse_uuid("No entity was found"))


class InventoryReplyParserTests(unittest.TestCase):
    def test_item_fields(self):
        self.assertTrue(parsers.is_empty_slot("Found no elements matching Inventory[{Slot:3b}].id"))
        self.assertEqual(
            parsers.parse_item_id('Steve has the following entity data: "minecraft:diamond_sword"'),
            "minecraft:diamond_sword",
        )
        self.assertEqual(parsers.parse_item_count("Steve has the following entity data: 32"), 32)
        self.assertEqual(parsers.parse_item_count(""), 1)
        self.assertEqual(parsers.item_label("minecraft:diamond_sword"), "Diamond Sword")

    def test_enchantments(self):
        raw = 'Steve has the following entity data: {"minecraft:sharpness": 5, "minecraft:unbreaking": 3}'
        self.assertEqual(parsers.parse_enchantments(raw), "Sharpness 5 · Unbreaking 3")
        self.assertIsNone(parsers.parse_enchantments("Steve has the following entity data: {}"))
        self.assertIsNone(parsers.parse_enchantments(""))

    def test_effects_and_flight(self):
        raw = 'data: [{id: "minecraft:speed", amplifier: 3b}, {id: "minecraft:jump_boost", amplifier: 1b}]'
        self.assertEqual(parsers.parse_active_effects(raw, EFFECT_IDS), ["speed", "jump"])
        self.assertTrue(parsers.parse_may_fly("data: {flying: 0b, mayfly: 1b, instabuild: 0b}"))
        self.assertFalse(parsers.parse_may_fly("data: {flying: 0b, mayfly: 0b}"))


if __name__ == "__main__":
    unittest.main()
