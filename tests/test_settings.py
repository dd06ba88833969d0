"""Tests for arcturus_casino/settings.py — models, stores and the manager."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from arcturus_casino.baccarat.game import BaccaratGame
from arcturus_casino.blackjack.game import BlackjackGame
from arcturus_casino.settings import (
    BACCARAT_SETTINGS_KEY,
    BaccaratSettings,
    BlackjackSettings,
    JsonFileSettingsStore,
    MemorySettingsStore,
    baccarat_settings,
    blackjack_settings,
)
from tests.conftest import StackedDeck


# ─── Models ───────────────────────────────────────────────────────────────────

class TestModels:
    def test_blackjack_defaults(self):
        s = BlackjackSettings()
        assert (s.starting_chips, s.min_bet, s.max_bet) == (1000, 10, 1000)
        assert s.dealer_speed == 'normal'
        assert s.use_llm is False

    def test_baccarat_defaults(self):
        s = BaccaratSettings()
        assert s.max_bet == 5000
        assert s.sound_enabled is True
        assert s.speed == 'normal'

    def test_reads_camel_case(self):
        s = BlackjackSettings.model_validate({'minBet': 25, 'maxBet': 500, 'useLLM': True})
        assert (s.min_bet, s.max_bet, s.use_llm) == (25, 500, True)

    def test_dumps_camel_case(self):
        data = BaccaratSettings().model_dump(by_alias=True)
        assert data['animationSpeed'] == 'normal'
        assert data['startingChips'] == 1000

    def test_clamps_limits(self):
        s = BlackjackSettings(min_bet=0, max_bet=-5, starting_chips=-100)
        assert (s.min_bet, s.max_bet, s.starting_chips) == (1, 1, 0)

    def test_min_pulled_down_to_max(self):
        s = BlackjackSettings(min_bet=500, max_bet=100)
        assert (s.min_bet, s.max_bet) == (100, 100)

    def test_nulls_and_unknown_keys_ignored(self):
        s = BaccaratSettings.model_validate({'minBet': None, 'colour': 'green'})
        assert s.min_bet == 10

    def test_bad_speed_rejected(self):
        with pytest.raises(ValidationError):
            BlackjackSettings(dealer_speed='warp')


# ─── Stores ───────────────────────────────────────────────────────────────────

class TestJsonFileSettingsStore:
    def test_missing_key(self, tmp_path):
        assert JsonFileSettingsStore(tmp_path).load('nope') is None

    def test_save_and_load(self, tmp_path):
        store = JsonFileSettingsStore(tmp_path / 'nested')
        store.save('arcturus:blackjack:settings:u1', {'minBet': 20})
        assert store.load('arcturus:blackjack:settings:u1') == {'minBet': 20}

    def test_key_sanitised_into_file_name(self, tmp_path):
        store = JsonFileSettingsStore(tmp_path)
        store.save('a:b/c', {})
        assert (tmp_path / 'a_b_c.json').exists()

    def test_corrupt_file(self, tmp_path):
        (tmp_path / 'k.json').write_text('{not json', encoding='utf-8')
        assert JsonFileSettingsStore(tmp_path).load('k') is None

    def test_non_object_file(self, tmp_path):
        (tmp_path / 'k.json').write_text('[1, 2]', encoding='utf-8')
        assert JsonFileSettingsStore(tmp_path).load('k') is None

    def test_delete(self, tmp_path):
        store = JsonFileSettingsStore(tmp_path)
        store.save('k', {'a': 1})
        store.delete('k')
        store.delete('k')
        assert store.load('k') is None


# ─── Manager ──────────────────────────────────────────────────────────────────

class TestSettingsManager:
    def test_defaults_when_empty(self):
        manager = blackjack_settings(MemorySettingsStore(), 'u1')
        assert manager.settings == BlackjackSettings()
        assert manager.key == 'arcturus:blackjack:settings:u1'

    def test_loads_stored_values(self):
        store = MemorySettingsStore({BACCARAT_SETTINGS_KEY: {'minBet': 50, 'soundEnabled': False}})
        s = baccarat_settings(store).settings
        assert s.min_bet == 50
        assert s.sound_enabled is False

    def test_invalid_stored_values_fall_back(self):
        store = MemorySettingsStore({BACCARAT_SETTINGS_KEY: {'animationSpeed': 'warp'}})
        assert baccarat_settings(store).settings == BaccaratSettings()

    def test_update_persists_camel_case(self):
        store = MemorySettingsStore()
        manager = blackjack_settings(store, 'u1')
        manager.update(min_bet=25, dealer_speed='fast')
        assert store.load('arcturus:blackjack:settings:u1')['minBet'] == 25
        assert blackjack_settings(store, 'u1').settings.dealer_speed == 'fast'

    def test_update_clamps(self):
        manager = blackjack_settings(MemorySettingsStore(), 'u1')
        assert manager.update(min_bet=2000).min_bet == 1000

    def test_settings_is_a_copy(self):
        manager = blackjack_settings(MemorySettingsStore(), 'u1')
        copy = manager.settings
        copy.min_bet = 999
        assert manager.settings.min_bet == 10

    def test_toggle(self):
        manager = baccarat_settings(MemorySettingsStore())
        assert manager.toggle('sound_enabled') is False
        assert manager.settings.sound_enabled is False

    def test_toggle_non_boolean(self):
        manager = baccarat_settings(MemorySettingsStore())
        with pytest.raises(ValueError):
            manager.toggle('min_bet')

    def test_reset_to_defaults(self):
        store = MemorySettingsStore()
        manager = blackjack_settings(store, 'u1')
        manager.update(max_bet=200)
        manager.reset_to_defaults()
        assert store.load(manager.key)['maxBet'] == 1000

    def test_clear(self):
        store = MemorySettingsStore()
        manager = blackjack_settings(store, 'u1')
        manager.update(max_bet=200)
        manager.clear()
        assert store.load(manager.key) is None
        assert manager.settings.max_bet == 1000

    @pytest.mark.parametrize('speed,delay', [('slow', 1.5), ('normal', 1.0), ('fast', 0.5)])
    def test_delay_seconds(self, speed, delay):
        manager = baccarat_settings(MemorySettingsStore())
        manager.update(animation_speed=speed)
        assert manager.delay_seconds() == delay

    def test_file_store_round_trip(self, tmp_path):
        manager = baccarat_settings(JsonFileSettingsStore(tmp_path))
        manager.update(max_bet=1234)
        stored = json.loads((tmp_path / 'baccarat-settings.json').read_text(encoding='utf-8'))
        assert stored['maxBet'] == 1234


class TestApplyTo:
    def test_pushes_limits(self):
        manager = blackjack_settings(MemorySettingsStore(), 'u1')
        manager.update(min_bet=25, max_bet=250)
        game = BlackjackGame(deck=StackedDeck())
        assert manager.apply_to(game) is True
        assert (game.min_bet, game.max_bet) == (25, 250)
        assert game.balance == 1000

    def test_reset_balance(self):
        manager = baccarat_settings(MemorySettingsStore())
        manager.update(starting_chips=5000)
        game = BaccaratGame(deck=StackedDeck())
        assert manager.apply_to(game, reset_balance=True) is True
        assert game.balance == 5000

    def test_reset_refused_mid_round(self):
        manager = blackjack_settings(MemorySettingsStore(), 'u1')
        game = BlackjackGame(deck=StackedDeck())
        game.place_bet(100)
        assert manager.apply_to(game, reset_balance=True) is False
        assert game.balance == 900
