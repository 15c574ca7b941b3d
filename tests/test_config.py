"""Tests for settings, configuration, errors and the debug log."""

import logging

import pytest
from llmfeeder.errors import (
    ERROR_MESSAGES,
    ConversionFailed,
    ErrorKind,
    FrameAccessDenied,
    NoSelection,
    PermissionDenied,
    classify_exception,
)
from llmfeeder.logging_config import DebugLog
from llmfeeder.models.config import DEFAULT_METADATA_FORMAT, ContentScope, ConversionSettings, PipelineConfig
from pydantic import ValidationError


class TestConversionSettings:
    """Tests for ConversionSettings."""

    def test_defaults(self):
        """Test default values."""
        settings = ConversionSettings()
        assert settings.content_scope == ContentScope.MAIN_CONTENT
        assert settings.preserve_tables is True
        assert settings.include_images is True
        assert settings.include_title is False
        assert settings.include_metadata is False
        assert settings.metadata_format == DEFAULT_METADATA_FORMAT
        assert settings.debug_mode is False
        assert settings.preserve_iframe_links is True

    def test_camel_case_keys(self):
        """Test validation from UI-style keys."""
        settings = ConversionSettings.model_validate(
            {"contentScope": "fullPage", "preserveTables": False, "includeMetadata": True}
        )
        assert settings.content_scope == ContentScope.FULL_PAGE
        assert settings.preserve_tables is False
        assert settings.include_metadata is True

    def test_unknown_keys_ignored(self):
        """Test that extra UI keys are ignored."""
        settings = ConversionSettings.model_validate({"theme": "dark", "keyboardShortcut": "Alt+M"})
        assert settings == ConversionSettings()

    def test_invalid_scope(self):
        """Test that an unknown scope is rejected."""
        with pytest.raises(ValidationError):
            ConversionSettings.model_validate({"contentScope": "everything"})

    def test_frozen(self):
        """Test that settings cannot be mutated during a run."""
        settings = ConversionSettings()
        with pytest.raises(ValidationError):
            settings.include_title = True

    def test_to_message(self):
        """Test serialization with camelCase keys."""
        message = ConversionSettings(include_images=False).to_message()
        assert message["includeImages"] is False
        assert message["contentScope"] == "mainContent"

    def test_from_yaml(self):
        """Test loading settings from YAML."""
        settings = ConversionSettings.from_yaml("contentScope: selection\ninclude_title: true\n")
        assert settings.content_scope == ContentScope.SELECTION
        assert settings.include_title is True

    def test_from_empty_yaml(self):
        """Test that empty YAML gives defaults."""
        assert ConversionSettings.from_yaml("") == ConversionSettings()

    def test_from_yaml_file(self, tmp_path):
        """Test loading settings from a YAML file."""
        path = tmp_path / "settings.yaml"
        path.write_text("includeImages: false\n", encoding="utf-8")
        assert ConversionSettings.from_yaml_file(path).include_images is False


class TestPipelineConfig:
    """Tests for PipelineConfig."""

    def test_defaults(self):
        """Test default limits."""
        config = PipelineConfig()
        assert config.conversion_timeout == 15.0
        assert config.iframe_timeout == 1.0
        assert config.iframe_batch_size == 5
        assert config.min_content_length == 50
        assert config.truncate_threshold == 100_000
        assert config.large_content_warning == 1_000_000
        assert config.max_debug_entries == 500

    def test_extra_forbidden(self):
        """Test that unknown keys are rejected."""
        with pytest.raises(ValidationError):
            PipelineConfig.model_validate({"conversion_timout": 3})

    def test_positive_timeouts(self):
        """Test that non-positive timeouts are rejected."""
        with pytest.raises(ValidationError):
            PipelineConfig(conversion_timeout=0)

    def test_yaml_roundtrip(self):
        """Test YAML serialization."""
        config = PipelineConfig(iframe_timeout=2.5, iframe_batch_size=3)
        assert PipelineConfig.from_yaml(config.to_yaml()) == config


class TestErrors:
    """Tests for the error taxonomy."""

    def test_details_default_to_user_message(self):
        """Test that details fall back to the user message."""
        error = NoSelection()
        assert error.kind == ErrorKind.NO_SELECTION
        assert error.details == ERROR_MESSAGES[ErrorKind.NO_SELECTION]
        assert str(error) == error.details

    def test_classify_passthrough(self):
        """Test that pipeline errors are returned unchanged."""
        error = NoSelection("nothing")
        assert classify_exception(error) is error

    def test_classify_permission(self):
        """Test that permission errors map to PermissionDenied."""
        error = classify_exception(FrameAccessDenied("https://x.example/"))
        assert isinstance(error, PermissionDenied)
        assert "https://x.example/" in error.details

    def test_classify_other(self):
        """Test that anything else maps to ConversionFailed."""
        error = classify_exception(ValueError("bad value"))
        assert isinstance(error, ConversionFailed)
        assert error.details == "ValueError: bad value"
        assert error.user_message == "An error occurred during conversion."


class TestDebugLog:
    """Tests for the per-run debug transcript."""

    def test_records_only_when_enabled(self):
        """Test capture on and off."""
        debug_log = DebugLog()
        logger = logging.getLogger("llmfeeder.tests")

        with debug_log.capture(enabled=False):
            logger.debug("ignored")
        assert debug_log.get_logs() == ""

        with debug_log.capture(enabled=True):
            logger.debug("Content extracted", extra={"data": {"length": 12}})
        logs = debug_log.get_logs()
        assert "Content extracted" in logs
        assert '"length": 12' in logs

    def test_survives_run_and_clears_on_next(self):
        """Test that entries outlive a run and reset on the next one."""
        debug_log = DebugLog()
        logger = logging.getLogger("llmfeeder.tests")

        with debug_log.capture(enabled=True):
            logger.info("first run")
        assert "first run" in debug_log.get_logs()
        assert debug_log not in logging.getLogger("llmfeeder").handlers

        debug_log.start_run(True)
        logger.info("second run")
        debug_log.stop()
        logs = debug_log.get_logs()
        assert "first run" not in logs
        assert "second run" in logs

    def test_bounded(self):
        """Test that the oldest entries are dropped past capacity."""
        debug_log = DebugLog(capacity=3)
        logger = logging.getLogger("llmfeeder.tests")

        with debug_log.capture(enabled=True):
            for i in range(5):
                logger.debug(f"entry {i}")

        assert len(debug_log) == 3
        assert "entry 0" not in debug_log.get_logs()
        assert "entry 4" in debug_log.get_logs()

    def test_restores_logger_level(self):
        """Test that the logger level is restored after a run."""
        logger = logging.getLogger("llmfeeder")
        original = logger.level
        debug_log = DebugLog()

        with debug_log.capture(enabled=True):
            assert logger.level == logging.DEBUG
        assert logger.level == original

    def test_exception_recorded(self):
        """Test that logged exceptions carry their type."""
        debug_log = DebugLog()
        logger = logging.getLogger("llmfeeder.tests")

        with debug_log.capture(enabled=True):
            try:
                raise ValueError("boom")
            except ValueError:
                logger.exception("Failed")

        logs = debug_log.get_logs()
        assert '"type": "ValueError"' in logs
        assert '"error": "boom"' in logs
