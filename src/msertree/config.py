"""Detector configuration."""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class MserConfig(BaseModel):
    """
    Configuration for the MserDetector.
    This class defines the stability window and the region acceptance criteria.
    """

    model_config = ConfigDict(frozen=True)

    delta: int | float = 1
    min_size: int = Field(default=1, ge=1)
    max_size: int | None = Field(default=None, ge=1)
    max_var: float = Field(default=1.0, ge=0)
    min_diversity: float = Field(default=0.0, ge=0, lt=1)
    dark_to_bright: bool = True

    @field_validator("delta")
    @classmethod
    def _positive_delta(cls, value: int | float) -> int | float:
        if value <= 0:
            raise ValueError(f"delta must be positive, got {value}")
        return value

    @model_validator(mode="after")
    def _size_range(self) -> "MserConfig":
        if self.max_size is not None and self.max_size < self.min_size:
            raise ValueError(
                f"max_size ({self.max_size}) must not be smaller than min_size ({self.min_size})"
            )
        return self
