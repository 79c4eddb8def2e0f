"""Tests for identifier casing and intermediate file names."""

from pathlib import Path

import pytest

from gbabuild.gfx.naming import (
    intermediate_name,
    intermediate_path,
    split_words,
    to_camel,
    to_pascal,
    to_screaming_snake,
)

pytestmark = pytest.mark.unit


class TestCasing:

    @pytest.mark.parametrize("text,expected", [
        ("leaf", "Leaf"),
        ("idle_front", "IdleFront"),
        ("walk-cycle", "WalkCycle"),
        ("player idle", "PlayerIdle"),
        ("HUD", "Hud"),
        ("heroSprite", "HeroSprite"),
        ("frame2", "Frame2"),
        ("ANIME_player walk", "AnimePlayerWalk"),
    ])
    def test_to_pascal(self, text, expected):
        assert to_pascal(text) == expected

    def test_to_camel(self):
        assert to_camel("sprites") == "sprites"
        assert to_camel("Big_Boss") == "bigBoss"
        assert to_camel("") == ""

    def test_to_screaming_snake(self):
        assert to_screaming_snake("player Frames") == "PLAYER_FRAMES"
        assert to_screaming_snake("bossFight Frames") == "BOSS_FIGHT_FRAMES"

    def test_split_words_acronym_boundary(self):
        assert split_words("HUDIcon") == ["HUD", "Icon"]


class TestIntermediateName:

    def test_nested_segments_are_joined(self):
        assert intermediate_name("dir/sub/Leaf.png", ".png") == "DirSubLeaf.png"

    def test_extension_replaced(self):
        assert intermediate_name("dir/Other.psd", ".png") == "DirOther.png"

    def test_backslash_separators(self):
        assert intermediate_name("dir\\sub\\Leaf.png", ".bmp") == "DirSubLeaf.bmp"

    def test_stable_across_calls(self):
        names = [intermediate_name("ui/HUD/heart.psd", ".png") for _ in range(3)]
        assert names == ["UiHudHeart.png"] * 3

    def test_different_directories_do_not_collide(self):
        a = intermediate_name("enemies/slime.png", ".png")
        b = intermediate_name("npcs/slime.png", ".png")
        assert a != b

    def test_identical_segments_collide(self):
        assert intermediate_name("a_b/c.png", ".png") == intermediate_name("a/b_c.png", ".png")

    def test_only_last_extension_is_stripped(self):
        assert intermediate_name("art/tiles.v2.png", ".png") == "ArtTilesV2.png"

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError):
            intermediate_name("___.png", ".png")

    def test_intermediate_path_in_output_dir(self, tmp_path):
        assert intermediate_path("a/b.png", tmp_path, ".bmp") == Path(tmp_path) / "AB.bmp"
