from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator


class ConfigError(ValueError):
    pass


class SearchConfig(BaseModel):
    """Bounds of one search run. Contradictory bounds fail at construction."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    limit: Optional[int] = Field(default=None, ge=1)
    max_init: Optional[int] = Field(default=None, ge=1)
    min_init: int = Field(default=14, ge=1)
    max_tape: int = Field(default=1250, ge=1)
    min_tape: int = Field(default=1, ge=0)
    max_node_cost: int = Field(default=20, ge=1)
    max_loops: int = Field(default=30_000, ge=1)
    max_slen: Optional[int] = Field(default=None, ge=1)
    min_slen: int = Field(default=1, ge=1)
    max_clen: Optional[int] = Field(default=None, ge=1)
    min_clen: int = Field(default=1, ge=1)
    rolling_limit: bool = False
    unique_cells: bool = False
    workers: int = Field(default=1, ge=1)

    @model_validator(mode="after")
    def check_ranges(self) -> "SearchConfig":
        ranges = (
            ("min_init", "max_init"),
            ("min_tape", "max_tape"),
            ("min_slen", "max_slen"),
            ("min_clen", "max_clen"),
        )
        for low_name, high_name in ranges:
            low = getattr(self, low_name)
            high = getattr(self, high_name)
            if high is not None and low > high:
                raise ValueError(f"{low_name} ({low}) must not exceed {high_name} ({high})")
        return self

    def initial_limit(self, goal: bytes) -> Tuple[int, bool]:
        """
        The inclusive program length limit to start from, and whether it rolls.

        Without an explicit limit a generous estimate is derived from the goal and
        the rolling limit is forced on so the estimate tightens immediately.
        """
        if self.limit is not None:
            return self.limit, self.rolling_limit

        diff = 0
        last = 0
        for byte in goal:
            diff += abs(byte - last)
            last = byte
        return diff // 3 + len(goal) + 20, True


def format_validation_error(error: ValidationError) -> str:
    messages = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"])
        message = detail["msg"].removeprefix("Value error, ")
        messages.append(f"{location}: {message}" if location else message)
    return "; ".join(messages)


def build_config(**options) -> SearchConfig:
    """Validate raw options into a SearchConfig, raising ConfigError on bad bounds."""
    try:
        return SearchConfig(**options)
    except ValidationError as e:
        raise ConfigError(format_validation_error(e)) from e
