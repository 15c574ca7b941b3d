"""Pydantic configuration models for llmfeeder."""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

DEFAULT_METADATA_FORMAT = "---\nSource: [{title}]({url})"


class ContentScope(str, Enum):
    """Which portion of a page feeds the conversion."""

    FULL_PAGE = "fullPage"
    SELECTION = "selection"
    MAIN_CONTENT = "mainContent"


class ConversionSettings(BaseModel):
    """
    Per-call conversion options.

    Accepts both the snake_case field names and the camelCase keys sent by
    the extension UI, so a request payload can be validated directly.

    Example:
        settings = ConversionSettings.model_validate(
            {"contentScope": "fullPage", "preserveTables": False}
        )
    """

    content_scope: ContentScope = Field(
        ContentScope.MAIN_CONTENT,
        alias="contentScope",
        description="Extraction strategy (fullPage, selection, mainContent)",
    )
    preserve_tables: bool = Field(True, alias="preserveTables", description="Render tables as Markdown tables")
    include_images: bool = Field(True, alias="includeImages", description="Keep images in the output")
    include_title: bool = Field(False, alias="includeTitle", description="Prepend the page title as an H1")
    include_metadata: bool = Field(False, alias="includeMetadata", description="Append a metadata block")
    metadata_format: str = Field(
        DEFAULT_METADATA_FORMAT,
        alias="metadataFormat",
        description="Template for the metadata block ({title}, {url}, {date}, {author}, {siteName}, {excerpt})",
    )
    debug_mode: bool = Field(False, alias="debugMode", description="Record a debug transcript for this run")
    preserve_iframe_links: bool = Field(
        True,
        alias="preserveIframeLinks",
        description="Replace unreachable iframes with a link to their source",
    )

    # The UI sends more keys than the pipeline understands
    model_config = {"populate_by_name": True, "extra": "ignore", "frozen": True}

    def to_message(self) -> dict:
        """Serialize with the camelCase keys used on the message channel."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "ConversionSettings":
        """Load settings from a YAML string."""
        import yaml

        data = yaml.safe_load(yaml_str) or {}
        return cls.model_validate(data)

    @classmethod
    def from_yaml_file(cls, path: Path) -> "ConversionSettings":
        """Load settings from a YAML file."""
        return cls.from_yaml(path.read_text(encoding="utf-8"))


class PipelineConfig(BaseModel):
    """Tunables for the pipeline itself (limits and timeouts)."""

    conversion_timeout: float = Field(15.0, gt=0, description="Overall seconds allowed per conversion")
    iframe_timeout: float = Field(1.0, gt=0, description="Seconds to wait for one cross-origin frame")
    iframe_batch_size: int = Field(5, ge=1, description="Cross-origin frames queried concurrently")
    min_content_length: int = Field(50, ge=0, description="Minimum text length for frame content to count")
    truncate_threshold: int = Field(
        100_000,
        ge=1,
        description="Serialized HTML size above which a failed conversion is retried truncated",
    )
    large_content_warning: int = Field(1_000_000, ge=1, description="Serialized size that is logged as large")
    max_debug_entries: int = Field(500, ge=1, description="Debug transcript capacity")

    model_config = {"extra": "forbid"}

    def to_yaml(self) -> str:
        """Serialize config to YAML string."""
        import yaml

        return yaml.dump(self.model_dump(mode="json"), default_flow_style=False)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "PipelineConfig":
        """Load config from YAML string."""
        import yaml

        data = yaml.safe_load(yaml_str) or {}
        return cls.model_validate(data)

    @classmethod
    def from_yaml_file(cls, path: Path) -> "PipelineConfig":
        """Load config from a YAML file."""
        return cls.from_yaml(path.read_text(encoding="utf-8"))
