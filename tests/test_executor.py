"""Tests for scout.executor.run_chain."""

from __future__ import annotations

from unittest.mock import MagicMock

from scout.errors import NetworkError, ParseError, ResourceUnavailable
from scout.executor import Attempt, Strategy, run_chain, summarise_attempts


def _accept_truthy(value) -> bool:
    return bool(value)


class TestRunChain:
    def test_first_accepted_result_wins(self) -> None:
        second = MagicMock(return_value="later")
        outcome = run_chain(
            "label",
            [Strategy("a", lambda: "first"), Strategy("b", second)],
            accept=_accept_truthy,
            fallback=lambda: "fallback",
        )
        assert outcome.value == "first"
        assert outcome.strategy == "a"
        assert not outcome.used_fallback
        second.assert_not_called()

    def test_errors_are_classified_and_skipped(self) -> None:
        def network():
            raise NetworkError("refused")

        def parse():
            raise ParseError("no results")

        outcome = run_chain(
            "label",
            [Strategy("net", network), Strategy("parse", parse), Strategy("ok", lambda: "value")],
            accept=_accept_truthy,
            fallback=lambda: "fallback",
        )
        assert outcome.strategy == "ok"
        assert [(a.strategy, a.outcome) for a in outcome.attempts] == [
            ("net", "network"),
            ("parse", "parse"),
            ("ok", "ok"),
        ]
        assert outcome.attempts[0].detail == "refused"

    def test_rejected_result_is_quality_failure(self) -> None:
        outcome = run_chain(
            "label",
            [Strategy("thin", lambda: ""), Strategy("full", lambda: "content")],
            accept=_accept_truthy,
            fallback=lambda: "fallback",
        )
        assert outcome.value == "content"
        assert outcome.attempts[0].outcome == "quality"

    def test_unexpected_exception_does_not_escape(self) -> None:
        def buggy():
            raise KeyError("oops")

        outcome = run_chain("label", [Strategy("buggy", buggy)], accept=_accept_truthy, fallback=lambda: "fb")
        assert outcome.value == "fb"
        assert outcome.attempts[0].outcome == "unexpected"

    def test_fallback_after_exhaustion(self) -> None:
        def unavailable():
            raise ResourceUnavailable("breaker open")

        outcome = run_chain(
            "label",
            [Strategy("browser", unavailable)],
            accept=_accept_truthy,
            fallback=lambda: "synthetic value",
        )
        assert outcome.value == "synthetic value"
        assert outcome.strategy == "synthetic"
        assert outcome.used_fallback
        assert len(outcome.attempts) == 1

    def test_no_strategies_goes_straight_to_fallback(self) -> None:
        fallback = MagicMock(return_value="fb")
        outcome = run_chain("label", [], accept=_accept_truthy, fallback=fallback)
        assert outcome.value == "fb"
        assert outcome.attempts == []
        fallback.assert_called_once_with()

    def test_fallback_not_called_on_success(self) -> None:
        fallback = MagicMock()
        run_chain("label", [Strategy("a", lambda: 1)], accept=_accept_truthy, fallback=fallback)
        fallback.assert_not_called()

    def test_every_attempt_logged(self, caplog) -> None:
        def network():
            raise NetworkError("refused")

        with caplog.at_level("INFO", logger="scout.executor"):
            run_chain(
                "https://example.com",
                [Strategy("http", network), Strategy("browser", lambda: "ok")],
                accept=_accept_truthy,
                fallback=lambda: "fb",
            )
        assert "[http] ✗ https://example.com (network" in caplog.text
        assert "[browser] ✓ https://example.com" in caplog.text


class TestSummariseAttempts:
    def test_formats_outcomes(self) -> None:
        attempts = [Attempt("http", "network", 0.1), Attempt("browser", "unavailable", 0.0)]
        assert summarise_attempts(attempts) == "http:network, browser:unavailable"

    def test_empty(self) -> None:
        assert summarise_attempts([]) is None
