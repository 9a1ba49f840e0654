"""Tests for diffgate-store implementations."""

from __future__ import annotations

from diffgate_store.markdown import MarkdownLogStore, render_markdown
from diffgate_store.models import ReviewLogRecord
from diffgate_store.noop import NoOpStore

STARTED_AT = "2025-03-14T09:26:53.589793+00:00"


def _make_record(**overrides) -> ReviewLogRecord:
    fields = dict(
        profile="prepush",
        title="Pre-push Comprehensive Review",
        trigger="prepush",
        started_at=STARTED_AT,
        status="allowed",
        duration_seconds=4.0,
        model="gpt-4o",
        files=["src/app.py", "README.md"],
        scores={"quality": 8, "security": 9},
        overall_score=7.5,
        assessment="GOOD",
        summary="ALLOWED: GOOD, overall 7.5/10",
        body="**OVERALL ASSESSMENT:** GOOD\n",
    )
    fields.update(overrides)
    return ReviewLogRecord(**fields)


# ---------------------------------------------------------------------------
# NoOpStore
# ---------------------------------------------------------------------------


class TestNoOpStore:
    def test_save_returns_none(self):
        assert NoOpStore().save(_make_record()) is None

    def test_close_does_not_raise(self):
        NoOpStore().close()


# ---------------------------------------------------------------------------
# render_markdown
# ---------------------------------------------------------------------------


class TestRenderMarkdown:
    def test_metadata_header(self):
        text = render_markdown(_make_record())
        assert text.startswith("# Pre-push Comprehensive Review Log\n")
        assert "**Date:** 2025-03-14 09:26:53 UTC" in text
        assert "**Profile:** prepush" in text
        assert "**Model:** gpt-4o" in text
        assert "**Changed Files:** src/app.py, README.md" in text
        assert "**Duration:** 4.0s" in text
        assert "**Status:** allowed" in text

    def test_scores_section(self):
        text = render_markdown(_make_record())
        assert "**Scores:** quality 8/10, security 9/10" in text
        assert "**Overall Score:** 7.5/10" in text
        assert "**Assessment:** GOOD" in text

    def test_body_follows_metadata(self):
        text = render_markdown(_make_record())
        assert text.index("**Status:**") < text.index("**OVERALL ASSESSMENT:** GOOD")
        assert text.endswith("**OVERALL ASSESSMENT:** GOOD\n")

    def test_optional_sections_omitted(self):
        text = render_markdown(
            _make_record(model="", scores={}, overall_score=None, assessment=None, summary="", files=[])
        )
        assert "**Model:**" not in text
        assert "**Scores:**" not in text
        assert "**Overall Score:**" not in text
        assert "**Changed Files:** (none)" in text

    def test_error_body(self):
        text = render_markdown(_make_record(body="AI review failed (timeout): Evaluation did not complete within 60s"))
        assert "AI review failed (timeout)" in text

    def test_empty_body_placeholder(self):
        assert render_markdown(_make_record(body="  ")).endswith("Review completed\n")

    def test_unparseable_date_kept_verbatim(self):
        assert "**Date:** yesterday" in render_markdown(_make_record(started_at="yesterday"))


# ---------------------------------------------------------------------------
# MarkdownLogStore
# ---------------------------------------------------------------------------


class TestMarkdownLogStore:
    def test_creates_log_dir(self, tmp_path):
        log_dir = tmp_path / "nested" / "logs"
        path = MarkdownLogStore(log_dir=str(log_dir)).save(_make_record())
        assert log_dir.is_dir()
        assert path.startswith(str(log_dir))

    def test_file_named_by_profile_and_timestamp(self, tmp_path):
        path = MarkdownLogStore(log_dir=str(tmp_path)).save(_make_record())
        name = path.rsplit("/", 1)[-1]
        assert name.startswith("prepush-2025-03-14T09-26-53")
        assert name.endswith(".md")
        assert ":" not in name

    def test_writes_rendered_markdown(self, tmp_path):
        record = _make_record()
        path = MarkdownLogStore(log_dir=str(tmp_path)).save(record)
        with open(path, encoding="utf-8") as f:
            assert f.read() == render_markdown(record)

    def test_same_timestamp_does_not_overwrite(self, tmp_path):
        store = MarkdownLogStore(log_dir=str(tmp_path))
        first = store.save(_make_record(body="first"))
        second = store.save(_make_record(body="second"))
        assert first != second
        assert second.endswith("-1.md")
        assert len(list(tmp_path.glob("*.md"))) == 2
        with open(first, encoding="utf-8") as f:
            assert "first" in f.read()
