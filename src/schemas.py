from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ----------------------------
# Campaign configuration (config.json)
# ----------------------------

class Range(BaseModel):
    model_config = ConfigDict(frozen=True)

    min: float
    max: float

    @model_validator(mode="after")
    def _check_order(self) -> "Range":
        if self.min > self.max:
            raise ValueError(f"min ({self.min}) is greater than max ({self.max})")
        return self

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max


class Bounds(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: Range
    lng: Range


class ChannelConfig(BaseModel):
    # Unknown keys (static_base_id, notes, ...) survive a rewrite.
    model_config = ConfigDict(frozen=True, extra="allow")

    id: str
    bounds: Optional[Bounds] = None
    base_id: int = Field(default=0, ge=0)
    sheet: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v):
        # Discord snowflakes may be written as JSON numbers.
        if isinstance(v, int):
            return str(v)
        return v


class BotConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    submit_channels: List[ChannelConfig] = Field(default_factory=list)
    log_channel: Optional[str] = None
    rejudge_channel: Optional[str] = None
    spreadsheet_id: str = ""
    current_round: Union[int, str] = 1

    @field_validator("log_channel", "rejudge_channel", mode="before")
    @classmethod
    def _channel_as_str(cls, v):
        if isinstance(v, int):
            return str(v)
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def _unique_channels(self) -> "BotConfig":
        seen = set()
        for ch in self.submit_channels:
            if ch.id in seen:
                raise ValueError(f"duplicate submit channel id: {ch.id}")
            seen.add(ch.id)
        return self

    def channel(self, channel_id: Union[int, str]) -> Optional[ChannelConfig]:
        cid = str(channel_id)
        for ch in self.submit_channels:
            if ch.id == cid:
                return ch
        return None


# ----------------------------
# Submissions
# ----------------------------

@dataclass(frozen=True)
class Submission:
    """One accepted record: the unit buffered per team and exported."""

    user: str
    id: int
    lat: str
    lng: str
    trial: bool
    road: bool
    field: bool
    team: str


@dataclass(frozen=True)
class SubmissionInput:
    """Parsed message. One message may expand to many ids sharing coords/flags."""

    user: str
    ids: range
    lat: str
    lng: str
    trial: bool = False
    road: bool = False
    field: bool = False
    team: str = ""

    def expand(self) -> List[Submission]:
        return [
            Submission(
                user=self.user,
                id=i,
                lat=self.lat,
                lng=self.lng,
                trial=self.trial,
                road=self.road,
                field=self.field,
                team=self.team,
            )
            for i in self.ids
        ]


# ----------------------------
# Errors (returned, not raised)
# ----------------------------

INVALID_FORMAT = "invalid_format"
INVALID_ID = "invalid_id"
INVALID_ID_RANGE = "invalid_id_range"
INVALID_COORDINATES = "invalid_coordinates"
NOT_CONSECUTIVE = "not_consecutive"
ID_GAP = "id_gap"
BATCH_TOO_LARGE = "batch_too_large"
OUT_OF_BOUNDS = "out_of_bounds"


@dataclass(frozen=True)
class SubmissionError:
    code: str
    message: str  # terse, for logs
    user_message: str  # guidance shown to the submitter


@dataclass(frozen=True)
class ParseError(SubmissionError):
    pass


@dataclass(frozen=True)
class SequenceError(SubmissionError):
    last_id: int = 0


@dataclass(frozen=True)
class BoundsError(SubmissionError):
    pass
