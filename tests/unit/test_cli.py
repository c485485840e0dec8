"""Tests for the verdict command line."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterator
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import orjson
import pytest

from helpers import make_settings
from verdict.cli import _refresh_item, build_parser, main
from verdict.core.exceptions import FatalSelectionError
from verdict.refresh.models import ItemRefreshResult, RefreshOutcome


@pytest.fixture
def quiet_cli() -> Iterator[MagicMock]:
    """Patch settings and logging so main() never touches the real environment."""
    with (
        patch("verdict.cli.get_settings", return_value=make_settings()),
        patch("verdict.cli.setup_logging") as setup,
    ):
        yield setup


class TestParser:
    def test_run_options(self) -> None:
        args = build_parser().parse_args(["run", "--limit", "25", "--dry-run"])
        assert args.command == "run"
        assert args.limit == 25
        assert args.dry_run is True
        assert args.test is False

    def test_report_default_days(self) -> None:
        args = build_parser().parse_args(["report"])
        assert args.days == 30

    def test_refresh_item_options(self) -> None:
        item_id = uuid4()
        args = build_parser().parse_args(["refresh-item", str(item_id), "--force"])
        assert args.item_id == item_id
        assert args.force is True

    def test_refresh_item_rejects_bad_id(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["refresh-item", "not-a-uuid"])

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestMain:
    def test_run_exit_code(self, quiet_cli: MagicMock) -> None:
        with patch("verdict.cli._run", new=AsyncMock(return_value=0)) as run:
            with pytest.raises(SystemExit) as exc:
                main(["run", "--limit", "5"])

        assert exc.value.code == 0
        settings, limit, dry_run = run.call_args.args
        assert limit == 5
        assert dry_run is False
        assert settings.rating_update_test_mode is False

    def test_test_flag_enables_test_mode(self, quiet_cli: MagicMock) -> None:
        with patch("verdict.cli._run", new=AsyncMock(return_value=0)) as run:
            with pytest.raises(SystemExit):
                main(["run", "--test"])

        settings = run.call_args.args[0]
        assert settings.rating_update_test_mode is True
        quiet_cli.assert_called_once_with(settings)

    def test_failed_run_exits_nonzero(self, quiet_cli: MagicMock) -> None:
        with patch("verdict.cli._run", new=AsyncMock(return_value=1)):
            with pytest.raises(SystemExit) as exc:
                main(["run"])
        assert exc.value.code == 1

    def test_verdict_error_exits_nonzero(self, quiet_cli: MagicMock) -> None:
        failing = AsyncMock(side_effect=FatalSelectionError("database unreachable"))
        with patch("verdict.cli._assign_tiers", new=failing):
            with pytest.raises(SystemExit) as exc:
                main(["assign-tiers"])
        assert exc.value.code == 1

    def test_report_days(self, quiet_cli: MagicMock) -> None:
        with patch("verdict.cli._report", new=AsyncMock(return_value=0)) as report:
            with pytest.raises(SystemExit):
                main(["report", "--days", "7"])
        assert report.call_args.args[1] == 7

    def test_serve_starts_uvicorn(self) -> None:
        with patch("verdict.cli.uvicorn.run") as run:
            main(["serve", "--port", "9000"])

        run.assert_called_once_with("verdict.main:app", host="0.0.0.0", port=9000, reload=False)

    def test_refresh_item_dispatch(self, quiet_cli: MagicMock) -> None:
        item_id = uuid4()
        with patch("verdict.cli._refresh_item", new=AsyncMock(return_value=0)) as refresh:
            with pytest.raises(SystemExit) as exc:
                main(["refresh-item", str(item_id)])

        assert exc.value.code == 0
        assert refresh.call_args.args[1:] == (item_id, False)


class TestRefreshItem:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("outcome", "code"),
        [(RefreshOutcome.updated, 0), (RefreshOutcome.unchanged, 0), (RefreshOutcome.failed, 1)],
    )
    async def test_exit_code_follows_outcome(
        self, outcome: RefreshOutcome, code: int, capsys: pytest.CaptureFixture[str]
    ) -> None:
        item_id = uuid4()
        orchestrator = AsyncMock()
        orchestrator.refresh_item.return_value = ItemRefreshResult(
            item_id, "Heat", outcome, 80, 94, requests=2
        )

        async def with_orchestrator(
            settings: object, action: Callable[..., Awaitable[int]], need_search: bool = False
        ) -> int:
            assert need_search is True
            return await action(orchestrator)

        with patch("verdict.cli._with_orchestrator", new=with_orchestrator):
            assert await _refresh_item(make_settings(), item_id, True) == code

        orchestrator.refresh_item.assert_awaited_once_with(item_id, force=True)
        printed = orjson.loads(capsys.readouterr().out)
        assert printed["outcome"] == outcome.value
        assert printed["api_calls"] == 2
