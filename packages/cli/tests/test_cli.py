"""Tests for the CLI entry point."""

import os
from unittest.mock import MagicMock

import yaml
from click.testing import CliRunner

from diffgate_cli.cli import _build_store, main
from diffgate_cli.commands.review import _outcome_to_record
from diffgate_core.decision import Decision
from diffgate_core.profiles import get_profile
from diffgate_core.providers.base import FAILURE_TIMEOUT, EvaluationFailure, EvaluationResponse
from diffgate_core.reviewer import ReviewOutcome
from diffgate_store.base import BaseStore
from diffgate_store.markdown import MarkdownLogStore
from diffgate_store.noop import NoOpStore


def _make_config(provider="openai", openai_key="oai", anthropic_key=None, **extra):
    config = {
        "provider": provider,
        "model": None,
        "max_tokens": None,
        "max_tokens_precommit": None,
        "log_dir": ".diffgate/logs",
        "write_logs": True,
        "profiles": {},
        "openai_api_key": openai_key,
        "anthropic_api_key": anthropic_key,
    }
    config.update(extra)
    return config


def _patch_common(mocker, config=None):
    """Patch load_config and _build_store for most tests."""
    cfg = config or _make_config()
    mocker.patch("diffgate_core.config.load_config", return_value=cfg)
    mock_store = MagicMock(spec=BaseStore)
    mock_store.save.return_value = ".diffgate/logs/prepush-x.md"
    mocker.patch("diffgate_cli.cli._build_store", return_value=mock_store)
    return cfg, mock_store


def _outcome(name="prepush", status="allowed", exit_code=0, blocked=False, response=None, decision=None):
    profile = get_profile(name)
    if response is None:
        response = EvaluationResponse(text="**OVERALL ASSESSMENT:** GOOD", elapsed_seconds=1.0)
    if decision is None:
        decision = Decision(blocked=blocked, assessment="GOOD", scores={"security": 8}, overall_score=7.0)
    return ReviewOutcome(
        profile=profile,
        status=status,
        exit_code=exit_code,
        trigger=profile.trigger,
        message="BLOCKED: bad" if blocked else "ALLOWED: GOOD",
        files=["app.py"],
        additions=3,
        deletions=1,
        decision=decision,
        response=response,
    )


def _patch_pipeline(mocker, outcome=None, error=None):
    mocker.patch("diffgate_cli.commands.review.build_evaluator", return_value=MagicMock())
    if error is not None:
        return mocker.patch("diffgate_cli.commands.review.run_review", side_effect=error)
    return mocker.patch("diffgate_cli.commands.review.run_review", return_value=outcome or _outcome())


class TestReviewValidation:
    def test_unknown_profile_lists_valid_profiles(self, mocker):
        _patch_common(mocker)
        run = _patch_pipeline(mocker)

        result = CliRunner().invoke(main, ["review", "nightly"])
        assert result.exit_code == 1
        assert "nightly" in result.output
        assert "precommit" in result.output
        assert "documentation" in result.output
        run.assert_not_called()

    def test_missing_key_blocks_strict_profile(self, mocker):
        _patch_common(mocker, config=_make_config(openai_key=None))
        run = _patch_pipeline(mocker)

        result = CliRunner().invoke(main, ["review", "prepush"])
        assert result.exit_code == 1
        assert "OPENAI_API_KEY" in result.output
        run.assert_not_called()

    def test_missing_key_skips_fast_path(self, mocker):
        _patch_common(mocker, config=_make_config(openai_key=None))
        run = _patch_pipeline(mocker)

        result = CliRunner().invoke(main, ["review", "precommit"])
        assert result.exit_code == 0
        assert "Skipping AI review" in result.output
        run.assert_not_called()

    def test_missing_anthropic_key(self, mocker):
        _patch_common(mocker, config=_make_config(provider="anthropic", anthropic_key=None))
        _patch_pipeline(mocker)

        result = CliRunner().invoke(main, ["review", "security"])
        assert result.exit_code == 1
        assert "ANTHROPIC_API_KEY" in result.output

    def test_bad_profile_override_is_config_error(self, mocker):
        _patch_common(mocker, config=_make_config(profiles={"prepush": {"template": "x"}}))
        _patch_pipeline(mocker)

        result = CliRunner().invoke(main, ["review"])
        assert result.exit_code == 1
        assert "Unsupported override" in result.output


class TestConfigErrors:
    def _broken_config(self, mocker, monkeypatch, tmp_path):
        monkeypatch.setenv("OPENAI_API_KEY", "oai")
        mocker.patch("diffgate_core.config.load_dotenv")
        path = tmp_path / ".diffgate.yml"
        path.write_text("provider: [openai\n")
        return str(path)

    def test_malformed_yaml_allows_precommit(self, mocker, monkeypatch, tmp_path):
        config_path = self._broken_config(mocker, monkeypatch, tmp_path)
        run = _patch_pipeline(mocker)

        result = CliRunner().invoke(main, ["--config", config_path, "review", "precommit"])
        assert result.exit_code == 0
        assert "Configuration error" in result.output
        assert "allowing commit" in result.output
        run.assert_not_called()

    def test_malformed_yaml_blocks_prepush(self, mocker, monkeypatch, tmp_path):
        config_path = self._broken_config(mocker, monkeypatch, tmp_path)
        run = _patch_pipeline(mocker)

        result = CliRunner().invoke(main, ["--config", config_path, "review", "prepush"])
        assert result.exit_code == 1
        assert "Could not parse" in result.output
        run.assert_not_called()

    def test_malformed_yaml_with_unknown_profile_blocks(self, mocker, monkeypatch, tmp_path):
        config_path = self._broken_config(mocker, monkeypatch, tmp_path)
        _patch_pipeline(mocker)

        result = CliRunner().invoke(main, ["--config", config_path, "review", "nightly"])
        assert result.exit_code == 1

    def test_malformed_yaml_fails_other_commands(self, mocker, monkeypatch, tmp_path):
        config_path = self._broken_config(mocker, monkeypatch, tmp_path)

        result = CliRunner().invoke(main, ["--config", config_path, "profiles"])
        assert result.exit_code == 1
        assert "Could not parse" in result.output

    def test_non_integer_token_ceiling_allows_precommit(self, mocker):
        _patch_common(mocker, config=_make_config(max_tokens_precommit="lots"))
        run = _patch_pipeline(mocker)

        result = CliRunner().invoke(main, ["review", "precommit"])
        assert result.exit_code == 0
        assert "max_tokens_precommit" in result.output
        run.assert_not_called()

    def test_non_integer_token_ceiling_blocks_prepush(self, mocker):
        _patch_common(mocker, config=_make_config(max_tokens="lots"))
        run = _patch_pipeline(mocker)

        result = CliRunner().invoke(main, ["review", "prepush"])
        assert result.exit_code == 1
        assert "max_tokens must be a number" in result.output
        run.assert_not_called()


class TestReviewRun:
    def test_defaults_to_prepush(self, mocker):
        _patch_common(mocker)
        run = _patch_pipeline(mocker)

        result = CliRunner().invoke(main, ["review"])
        assert result.exit_code == 0
        assert run.call_args.args[0].name == "prepush"

    def test_blocked_outcome_exits_one(self, mocker):
        _patch_common(mocker)
        _patch_pipeline(mocker, outcome=_outcome(status="blocked", exit_code=1, blocked=True))

        result = CliRunner().invoke(main, ["review", "prepush"])
        assert result.exit_code == 1

    def test_cli_options_reach_the_pipeline(self, mocker):
        _patch_common(mocker)
        run = _patch_pipeline(mocker)

        CliRunner().invoke(main, ["review", "security", "--trigger", "prepush", "--model", "gpt-4.1"])
        profile, config, _ = run.call_args.args
        assert profile.model == "gpt-4.1"
        assert config["model"] == "gpt-4.1"
        assert run.call_args.kwargs["trigger"] == "prepush"

    def test_log_saved_for_evaluated_outcome(self, mocker):
        _, store = _patch_common(mocker)
        _patch_pipeline(mocker)

        result = CliRunner().invoke(main, ["review", "prepush"])
        store.save.assert_called_once()
        assert "Review log saved" in result.output

    def test_no_log_flag_skips_store(self, mocker):
        _, store = _patch_common(mocker)
        _patch_pipeline(mocker)

        CliRunner().invoke(main, ["review", "prepush", "--no-log"])
        store.save.assert_not_called()

    def test_no_log_for_unevaluated_outcome(self, mocker):
        _, store = _patch_common(mocker)
        outcome = ReviewOutcome(
            profile=get_profile("prepush"), status="no_changes", exit_code=0, trigger="prepush", message="No changes"
        )
        _patch_pipeline(mocker, outcome=outcome)

        result = CliRunner().invoke(main, ["review", "prepush"])
        assert result.exit_code == 0
        store.save.assert_not_called()

    def test_log_write_failure_does_not_change_exit_code(self, mocker):
        _, store = _patch_common(mocker)
        store.save.side_effect = OSError("read-only file system")
        _patch_pipeline(mocker)

        result = CliRunner().invoke(main, ["review", "prepush"])
        assert result.exit_code == 0
        assert "Could not write review log" in result.output


class TestUnexpectedErrors:
    def test_fast_path_allows(self, mocker):
        _patch_common(mocker)
        _patch_pipeline(mocker, error=RuntimeError("kaboom"))

        result = CliRunner().invoke(main, ["review", "precommit"])
        assert result.exit_code == 0
        assert "kaboom" in result.output

    def test_strict_profile_blocks(self, mocker):
        _patch_common(mocker)
        _patch_pipeline(mocker, error=RuntimeError("kaboom"))

        result = CliRunner().invoke(main, ["review", "prepush"])
        assert result.exit_code == 1
        assert "kaboom" in result.output

    def test_reporting_error_on_fast_path_allows(self, mocker):
        _patch_common(mocker)
        _patch_pipeline(mocker, outcome=_outcome(name="precommit"))
        mocker.patch("diffgate_cli.commands.review.print_review", side_effect=RuntimeError("terminal closed"))

        result = CliRunner().invoke(main, ["review", "precommit"])
        assert result.exit_code == 0
        assert "terminal closed" in result.output

    def test_markup_in_error_message_is_printed_literally(self, mocker):
        _patch_common(mocker)
        _patch_pipeline(mocker, error=RuntimeError("bad [/red] tag"))

        result = CliRunner().invoke(main, ["review", "prepush"])
        assert result.exit_code == 1
        assert "bad [/red] tag" in result.output



class TestOutcomeToRecord:
    def test_maps_scores_and_body(self):
        record = _outcome_to_record(_outcome())
        assert record.profile == "prepush"
        assert record.model == "gpt-4o"
        assert record.scores == {"security": 8}
        assert record.body == "**OVERALL ASSESSMENT:** GOOD"
        assert record.files == ["app.py"]

    def test_model_comes_from_response(self):
        response = EvaluationResponse(text="**OVERALL ASSESSMENT:** GOOD", model="claude-sonnet-4-20250514")
        record = _outcome_to_record(_outcome(response=response))
        assert record.model == "claude-sonnet-4-20250514"

    def test_failure_body_is_error_message(self):
        response = EvaluationResponse(failure=EvaluationFailure(FAILURE_TIMEOUT, "Evaluation did not complete"))
        decision = Decision(blocked=False, failed=True, confident=False)
        record = _outcome_to_record(_outcome(response=response, decision=decision))
        assert record.body == "AI review failed (timeout): Evaluation did not complete"
        assert "unavailable" in record.summary


class TestBuildStore:
    def test_markdown_by_default(self, tmp_path):
        store = _build_store({"log_dir": str(tmp_path)})
        assert isinstance(store, MarkdownLogStore)
        assert str(store.log_dir) == str(tmp_path)

    def test_noop_when_logs_disabled(self):
        assert isinstance(_build_store({"write_logs": False}), NoOpStore)


class TestProfilesCommand:
    def test_lists_every_profile(self, mocker):
        _patch_common(mocker)

        result = CliRunner().invoke(main, ["profiles"])
        assert result.exit_code == 0
        for name in ("precommit", "prepush", "unified", "critical", "security"):
            assert name in result.output

    def test_shows_overrides(self, mocker):
        _patch_common(mocker, config=_make_config(profiles={"precommit": {"model": "gpt-4.1-nano"}}))

        result = CliRunner().invoke(main, ["profiles"])
        assert "gpt-4.1-nano" in result.output


class TestInstallCommand:
    def test_writes_hooks_and_config(self, mocker, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        _patch_common(mocker)
        hooks = tmp_path / "hooks"

        result = CliRunner().invoke(main, ["install", "--provider", "anthropic", "--hooks-dir", str(hooks)])
        assert result.exit_code == 0

        pre_commit = (hooks / "pre-commit").read_text()
        assert "diffgate review precommit" in pre_commit
        assert pre_commit.startswith("#!/bin/sh")
        assert os.access(hooks / "pre-commit", os.X_OK)
        assert "diffgate review prepush" in (hooks / "pre-push").read_text()

        config = yaml.safe_load((tmp_path / ".diffgate.yml").read_text())
        assert config["provider"] == "anthropic"
        assert config["log_dir"] == ".diffgate/logs"
        assert "ANTHROPIC_API_KEY" in result.output

    def test_keeps_existing_config_keys(self, mocker, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        _patch_common(mocker)
        (tmp_path / ".diffgate.yml").write_text("default_branch: develop\nwrite_logs: false\n")

        CliRunner().invoke(main, ["install", "--provider", "openai", "--hooks-dir", str(tmp_path / "hooks")])

        config = yaml.safe_load((tmp_path / ".diffgate.yml").read_text())
        assert config["default_branch"] == "develop"
        assert config["write_logs"] is False
        assert config["provider"] == "openai"

    def test_existing_hook_not_overwritten(self, mocker, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        _patch_common(mocker)
        hooks = tmp_path / "hooks"
        hooks.mkdir()
        (hooks / "pre-commit").write_text("#!/bin/sh\nrun-other-tool\n")

        result = CliRunner().invoke(main, ["install", "--no-config", "--hooks-dir", str(hooks)])
        assert result.exit_code == 0
        assert "run-other-tool" in (hooks / "pre-commit").read_text()
        assert (hooks / "pre-push").exists()
        assert not (tmp_path / ".diffgate.yml").exists()

    def test_force_overwrites_hook(self, mocker, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        _patch_common(mocker)
        hooks = tmp_path / "hooks"
        hooks.mkdir()
        (hooks / "pre-commit").write_text("#!/bin/sh\nrun-other-tool\n")

        CliRunner().invoke(main, ["install", "--no-config", "--force", "--hooks-dir", str(hooks)])
        assert "diffgate review precommit" in (hooks / "pre-commit").read_text()

    def test_outside_git_repository(self, mocker, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        _patch_common(mocker)
        mocker.patch("diffgate_cli.commands.install._detect_hooks_dir", return_value=None)

        result = CliRunner().invoke(main, ["install", "--no-config"])
        assert result.exit_code == 1
        assert "Not inside a git repository" in result.output
