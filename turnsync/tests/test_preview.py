"""
Tests for PreviewCoordinator.

Tests:
- Debounce: a burst of edits sends one request
- Empty and locally illegal moves never reach the authority
- Stale responses are discarded
- Failures degrade to an unknown result
"""

import asyncio

import pytest

from ..engine_core.action import PendingAction, ProvisionalMove, ResourceRef
from ..errors import NetworkError
from .conftest import codebreaking_state, open_engine, placement_state

CENTER = 7


def rack(i: int) -> ResourceRef:
    return ResourceRef("rack", i)


class TestDebounce:
    @pytest.mark.asyncio
    async def test_center_run_previewed_once(self):
        """Five quick placements, one preview after the debounce window."""
        engine, fake = await open_engine("scrabble", placement_state(), preview_debounce=0.05)
        try:
            for i in range(5):
                engine.place(rack(i), (CENTER, CENTER + i))
            assert fake.count("preview_move") == 0

            await engine.preview.wait()

            assert fake.count("preview_move") == 1
            assert engine.preview.request_count == 1
            _, payload = fake.calls[-1]
            assert len(payload.body["tiles"]) == 5

            result = engine.preview_result
            assert result is not None
            assert result.valid and result.metric == 12
            assert result.detail == ["HELLO"]
            assert engine.can_commit
            assert len(engine.groups()) == 1
        finally:
            await engine.close()

    @pytest.mark.asyncio
    async def test_empty_move_clears_without_request(self):
        engine, fake = await open_engine("scrabble", placement_state())
        try:
            engine.place(rack(0), (CENTER, CENTER))
            engine.toggle((CENTER, CENTER))
            await asyncio.sleep(0.05)

            assert engine.move.is_empty
            assert engine.preview.result is None
            assert fake.count("preview_move") == 0
        finally:
            await engine.close()

    @pytest.mark.asyncio
    async def test_variant_without_remote_preview(self):
        """Code game previews come from the local check alone."""
        engine, fake = await open_engine("mastermind", codebreaking_state())
        try:
            for slot, color in enumerate([0, 1, 2]):
                engine.place(ResourceRef("color", color), slot)
            assert not engine.preview_result.valid
            assert not engine.can_commit

            engine.place(ResourceRef("color", 3), 3)
            assert engine.preview_result.valid
            assert engine.can_commit
            assert fake.count("preview_move") == 0
        finally:
            await engine.close()


class TestStaleResults:
    @pytest.mark.asyncio
    async def test_response_for_old_move_discarded(self):
        engine, fake = await open_engine("scrabble", placement_state(), preview_debounce=0.01)
        fake.hold["preview_move"] = asyncio.Event()
        try:
            engine.place(rack(0), (CENTER, CENTER))
            await asyncio.sleep(0.05)
            assert fake.count("preview_move") == 1

            # Edit while the request is in flight
            engine.place(rack(1), (CENTER, CENTER + 1))
            fake.hold["preview_move"].set()
            await engine.preview.wait()

            assert fake.count("preview_move") == 2
            result = engine.preview_result
            assert result is not None
            assert result.matches(engine.move)
            assert engine.preview.result.shape_key == engine.move.shape_key
        finally:
            await engine.close()

    @pytest.mark.asyncio
    async def test_result_never_matches_a_changed_move(self):
        engine, fake = await open_engine("scrabble", placement_state())
        try:
            engine.place(rack(0), (CENTER, CENTER))
            await engine.preview.wait()
            old = engine.preview.result

            engine.place(rack(1), (CENTER, CENTER + 1))
            assert not old.enables_commit(engine.move)
            assert engine.preview_result is None
        finally:
            await engine.close()


class TestFailures:
    @pytest.mark.asyncio
    async def test_network_failure_degrades(self):
        engine, fake = await open_engine("scrabble", placement_state())
        fake.errors["preview_move"] = NetworkError("authority unreachable")
        try:
            engine.place(rack(0), (CENTER, CENTER))
            await engine.preview.wait()

            result = engine.preview_result
            assert result is not None
            assert not result.known
            assert not result.valid
            assert result.error_reason == "authority unreachable"
            assert not engine.can_commit
        finally:
            await engine.close()

    @pytest.mark.asyncio
    async def test_locally_illegal_never_requested(self):
        engine, fake = await open_engine("scrabble", placement_state(rack="AB"))
        try:
            move = ProvisionalMove().with_action(PendingAction((7, 7), rack(5), "Q"))
            engine.preview.on_move_changed(move)
            await asyncio.sleep(0.05)

            assert fake.count("preview_move") == 0
            result = engine.preview.current(move)
            assert result is not None
            assert result.known and not result.valid
            assert "Rack tile 5" in result.error_reason
        finally:
            await engine.close()
