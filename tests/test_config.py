"""
Tests for ReviewConfig and logging setup.
"""

import logging

import structlog

from prev_review import configure_logging
from prev_review.config import ReviewConfig
from prev_review.review import Strictness
from prev_review.symbols import SerenaMode


class TestReviewConfig:
    def test_defaults(self):
        config = ReviewConfig()

        assert config.context_lines == 10
        assert config.max_batch_tokens == 80_000
        assert config.min_context_lines == 3
        assert config.strictness is Strictness.NORMAL
        assert config.serena_mode is SerenaMode.AUTO
        assert config.completion_timeout == 120.0

    def test_non_positive_values_fall_back(self):
        config = ReviewConfig(context_lines=0, max_batch_tokens=-5, min_context_lines=0)

        assert (config.context_lines, config.max_batch_tokens, config.min_context_lines) == (10, 80_000, 3)

    def test_string_enums_are_parsed(self):
        config = ReviewConfig(strictness="STRICT", serena_mode="off")

        assert config.strictness is Strictness.STRICT
        assert config.serena_mode is SerenaMode.OFF

    def test_unknown_strings_use_defaults(self):
        config = ReviewConfig(strictness="pedantic", serena_mode="maybe")

        assert config.strictness is Strictness.NORMAL
        assert config.serena_mode is SerenaMode.AUTO

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("PREV_CONTEXT_LINES", "5")
        monkeypatch.setenv("PREV_MAX_BATCH_TOKENS", "1000")
        monkeypatch.setenv("PREV_STRICTNESS", "lenient")
        monkeypatch.setenv("PREV_SERENA_MODE", "on")
        monkeypatch.setenv("PREV_PATH_FILTER", "internal/")
        monkeypatch.setenv("PREV_COMPLETION_TIMEOUT", "30")
        monkeypatch.setenv("PREV_DEBUG", "yes")

        config = ReviewConfig.from_env()

        assert config.context_lines == 5
        assert config.max_batch_tokens == 1000
        assert config.strictness is Strictness.LENIENT
        assert config.serena_mode is SerenaMode.ON
        assert config.path_filter == "internal/"
        assert config.completion_timeout == 30.0
        assert config.debug is True

    def test_from_env_defaults(self, monkeypatch):
        for name in ["PREV_CONTEXT_LINES", "PREV_STRICTNESS", "PREV_SERENA_MODE", "PREV_DEBUG"]:
            monkeypatch.delenv(name, raising=False)

        config = ReviewConfig.from_env()

        assert config.context_lines == 10
        assert config.serena_mode is SerenaMode.AUTO
        assert config.debug is False


class TestConfigureLogging:
    def test_debug_enables_debug_level(self):
        try:
            configure_logging(debug=True)

            wrapper = structlog.get_config()["wrapper_class"]
            assert wrapper is structlog.make_filtering_bound_logger(logging.DEBUG)
        finally:
            structlog.reset_defaults()
