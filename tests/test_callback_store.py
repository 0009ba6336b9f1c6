"""Tests for the callback token store and the private chat session cache."""

import asyncio
import json

import pytest

from conftest import token_keys
from dicebot.callback_store import (
    STATE_GAME_DRAW_CYCLE,
    STATE_SIMPLE_ODDS,
    PrivateChatSession,
    TokenStore,
)
from dicebot.errors import DecodingError, EncodingError, IDGenerationError, TokenNotFound


class TestTokenStore:
    @pytest.mark.asyncio
    async def test_resolve_returns_bag_as_stored(self, tokens) -> None:
        bag = {"chatGroupId": "42", "gameplayType": "quick_there"}
        token = await tokens.put(bag)
        assert await tokens.resolve(token) == bag

    @pytest.mark.asyncio
    async def test_empty_bag_round_trips(self, tokens) -> None:
        token = await tokens.put({})
        assert await tokens.resolve(token) == {}

    @pytest.mark.asyncio
    async def test_stored_under_button_callback_namespace(self, tokens, backend) -> None:
        token = await tokens.put({"chatGroupId": "7"})
        raw = await backend.get(f"BUTTON_CALLBACK_DATA:{token}")
        assert json.loads(raw) == {"chatGroupId": "7"}

    @pytest.mark.asyncio
    async def test_expires_after_one_hour(self, tokens, clock) -> None:
        token = await tokens.put({"chatGroupId": "1"})
        clock.advance(3599)
        assert await tokens.resolve(token) == {"chatGroupId": "1"}
        clock.advance(1)
        with pytest.raises(TokenNotFound):
            await tokens.resolve(token)

    @pytest.mark.asyncio
    async def test_unknown_token_is_not_found(self, tokens) -> None:
        with pytest.raises(TokenNotFound):
            await tokens.resolve("123456789")

    @pytest.mark.asyncio
    async def test_identical_bags_get_distinct_tokens(self, tokens, backend) -> None:
        first = await tokens.put({"chatGroupId": "1"})
        second = await tokens.put({"chatGroupId": "1"})
        assert first != second
        assert len(token_keys(backend)) == 2
        assert await tokens.resolve(first) == await tokens.resolve(second)

    @pytest.mark.asyncio
    async def test_resolution_is_repeatable(self, tokens) -> None:
        token = await tokens.put({"chatGroupId": "1"})
        for _ in range(3):
            assert await tokens.resolve(token) == {"chatGroupId": "1"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "bag",
        [
            pytest.param({"chatGroupId": 1}, id="int-value"),
            pytest.param({"nested": {"a": "b"}}, id="nested"),
            pytest.param(["chatGroupId"], id="not-a-dict"),
        ],
    )
    async def test_unserializable_bag_is_rejected(self, tokens, backend, bag) -> None:
        with pytest.raises(EncodingError):
            await tokens.put(bag)
        assert token_keys(backend) == []

    @pytest.mark.asyncio
    async def test_corrupt_value_is_decoding_error(self, tokens, backend) -> None:
        await backend.set("BUTTON_CALLBACK_DATA:99", "{not json", 60)
        with pytest.raises(DecodingError):
            await tokens.resolve("99")

    @pytest.mark.asyncio
    async def test_non_string_map_is_decoding_error(self, tokens, backend) -> None:
        await backend.set("BUTTON_CALLBACK_DATA:98", json.dumps({"chatGroupId": 5}), 60)
        with pytest.raises(DecodingError):
            await tokens.resolve("98")

    @pytest.mark.asyncio
    async def test_id_failure_stores_nothing(self, backend) -> None:
        class BrokenIds:
            def next_id(self) -> str:
                raise IDGenerationError("clock moved backwards")

        store = TokenStore(backend, BrokenIds(), ttl=3600)
        with pytest.raises(IDGenerationError):
            await store.put({"chatGroupId": "1"})
        assert token_keys(backend) == []

    @pytest.mark.asyncio
    async def test_concurrent_puts_and_resolves(self, tokens, backend) -> None:
        bags = [{"chatGroupId": str(i % 10), "n": str(i)} for i in range(90)]
        bags += [{"chatGroupId": "same"} for _ in range(10)]

        issued = await asyncio.gather(*(tokens.put(bag) for bag in bags))
        resolved = await asyncio.gather(*(tokens.resolve(token) for token in issued))

        assert len(set(issued)) == len(bags)
        assert len(token_keys(backend)) == len(bags)
        assert resolved == bags


class TestSessionCache:
    @pytest.mark.asyncio
    async def test_save_then_load(self, sessions) -> None:
        session = PrivateChatSession("42", STATE_GAME_DRAW_CYCLE)
        await sessions.save(555, session)
        assert await sessions.load(555) == session

    @pytest.mark.asyncio
    async def test_save_overwrites(self, sessions) -> None:
        await sessions.save(555, PrivateChatSession("1", STATE_GAME_DRAW_CYCLE))
        await sessions.save(555, PrivateChatSession("2", STATE_SIMPLE_ODDS))
        assert await sessions.load(555) == PrivateChatSession("2", STATE_SIMPLE_ODDS)

    @pytest.mark.asyncio
    async def test_key_layout_and_payload(self, sessions, backend) -> None:
        await sessions.save(555, PrivateChatSession("42", STATE_GAME_DRAW_CYCLE))
        raw = await backend.get("BOT_PRIVATE_CHAT_CACHE:TG_USER_ID:555")
        assert json.loads(raw) == {"chatGroupId": "42", "state": "game_draw_cycle"}

    @pytest.mark.asyncio
    async def test_expires_after_one_day(self, sessions, clock) -> None:
        await sessions.save(555, PrivateChatSession("42", STATE_GAME_DRAW_CYCLE))
        clock.advance(86399)
        assert await sessions.load(555) is not None
        clock.advance(1)
        assert await sessions.load(555) is None

    @pytest.mark.asyncio
    async def test_unknown_state_is_decoding_error(self, sessions, backend) -> None:
        await backend.set(
            "BOT_PRIVATE_CHAT_CACHE:TG_USER_ID:555",
            json.dumps({"chatGroupId": "1", "state": "dancing"}),
            60,
        )
        with pytest.raises(DecodingError):
            await sessions.load(555)
