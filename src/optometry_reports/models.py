"""Pydantic models for report documents and aggregation results.

`Report` parses documents as they are stored (lenient: legacy fields,
string numbers, missing timestamps). `ReportSubmission` validates new data
from the entry form strictly. The result models carry the exact `Period`
they were computed for so callers can refuse to show a total under the
wrong month header.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from optometry_reports.aggregate.periods import Period, normalize_month, normalize_year
from optometry_reports.aggregate.vectors import (
    ANSWER_KEYS,
    ANSWER_SLOTS,
    answers_to_vector,
    to_number,
)
from optometry_reports.canonical.aliases import sanitize

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

EYE_BANK_CATEGORIES: tuple[str, str] = ("Eye Bank", "Eye Collection Centre")
EYE_BANK_METRICS: tuple[str, ...] = (
    "collected",
    "keratoplasty",
    "research",
    "distributed",
    "pledges",
)
VISION_CENTER_METRICS: tuple[str, ...] = (
    "examined",
    "cataract",
    "other_diseases",
    "refractive_errors",
    "spectacles_prescribed",
)
MAX_VISION_CENTERS = 10

# Older entry forms stored table rows under these keys; {n} is the 1-based row.
_VC_LEGACY_KEYS: dict[str, tuple[str, ...]] = {
    "examined": ("vc_{n}_examined", "patients_examined", "patientsExamined"),
    "cataract": ("vc_{n}_cataract", "cataractDetected", "cataract_cases"),
    "other_diseases": ("vc_{n}_other_diseases", "otherDiseases", "otherEyeDiseases"),
    "refractive_errors": ("vc_{n}_refractive_errors", "refractive_error", "refraction"),
    "spectacles_prescribed": (
        "vc_{n}_spectacles_prescribed",
        "spectacle_prescribed",
        "spectacles",
    ),
}
_EB_LEGACY_KEYS: dict[str, tuple[str, ...]] = {
    "collected": ("eb_{n}_collected", "eyes_collected"),
    "keratoplasty": ("eb_{n}_keratoplasty", "eyes_keratoplasty", "eyes_utilized"),
    "research": ("eb_{n}_research", "eyes_research"),
    "distributed": ("eb_{n}_distributed", "eyes_distributed"),
    "pledges": ("eb_{n}_pledges", "pledge_forms"),
}


def _as_utc(ts: datetime | None) -> datetime | None:
    if ts is None:
        return None
    return ts.replace(tzinfo=timezone.utc) if ts.tzinfo is None else ts.astimezone(timezone.utc)


def _pick(row: dict[str, Any], candidates: tuple[str, ...], n: int) -> Any:
    for key in candidates:
        key = key.format(n=n)
        v = row.get(key)
        if v is not None and str(v).strip() != "":
            return v
    return None


def _strict_answer(key: str, value: Any) -> float:
    # blank form fields count as 0; anything else must be a non-negative number
    if value is None or (isinstance(value, str) and not value.strip()):
        return 0.0
    if isinstance(value, bool):
        raise ValueError(f"{key}: expected a number, got {value!r}")
    try:
        n = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{key}: expected a number, got {value!r}") from None
    if not math.isfinite(n) or n < 0:
        raise ValueError(f"{key}: must be a non-negative number, got {value!r}")
    return n


class Tier(str, Enum):
    """How authoritative the data behind an aggregation result is."""
    AUTHORITATIVE = "authoritative"
    LOCAL_FALLBACK = "local-fallback"
    STORED_SNAPSHOT = "stored-snapshot"
    EMPTY = "empty"


class EyeBankRow(BaseModel):
    """One of the two fixed eye-bank rows with its five monthly counts."""
    model_config = ConfigDict(extra="forbid")
    category: Literal["Eye Bank", "Eye Collection Centre"]
    collected: float = Field(0, ge=0)
    keratoplasty: float = Field(0, ge=0)
    research: float = Field(0, ge=0)
    distributed: float = Field(0, ge=0)
    pledges: float = Field(0, ge=0)

    @classmethod
    def from_stored(cls, row: Any, index: int) -> "EyeBankRow":
        """Map a stored row (any historical key layout) onto the canonical metrics."""
        row = row if isinstance(row, dict) else {}
        values = {
            m: to_number(_pick(row, (m, *_EB_LEGACY_KEYS[m]), index + 1)) for m in EYE_BANK_METRICS
        }
        return cls.model_construct(category=EYE_BANK_CATEGORIES[index], **values)

    def metrics(self) -> dict[str, float]:
        return {m: float(getattr(self, m)) for m in EYE_BANK_METRICS}


class VisionCenterRow(BaseModel):
    """A named vision sub-center and its five monthly counts."""
    model_config = ConfigDict(extra="forbid")
    name: str = ""
    examined: float = Field(0, ge=0)
    cataract: float = Field(0, ge=0)
    other_diseases: float = Field(0, ge=0)
    refractive_errors: float = Field(0, ge=0)
    spectacles_prescribed: float = Field(0, ge=0)

    @field_validator("name", mode="before")
    @classmethod
    def _clean_name(cls, v: Any) -> str:
        return sanitize(v)

    @classmethod
    def from_stored(cls, row: Any, index: int) -> "VisionCenterRow":
        row = row if isinstance(row, dict) else {}
        n = index + 1
        name = _pick(row, ("name", "vc_{n}_name"), n)
        values = {
            m: to_number(_pick(row, (m, *_VC_LEGACY_KEYS[m]), n)) for m in VISION_CENTER_METRICS
        }
        return cls.model_construct(name=sanitize(name), **values)

    def is_empty(self) -> bool:
        return not self.name and not any(getattr(self, m) for m in VISION_CENTER_METRICS)

    def metrics(self) -> dict[str, float]:
        return {m: float(getattr(self, m)) for m in VISION_CENTER_METRICS}


class Report(BaseModel):
    """A stored monthly report document.

    Attributes:
        id: Store identifier (Mongo `_id` rendered as a string).
        district: District name as stored.
        institution: Institution name as stored (may be a historical alias).
        month: Month name as stored.
        year: Year as stored.
        answers: Slot key (q1..q84) to monthly count.
        cumulative: Legacy stored running-total snapshot, if any.
        eye_bank: Raw eye-bank rows.
        vision_center: Raw vision-center rows.
        locked: Whether edits require an explicit unlock.
        created_at: Creation timestamp.
        updated_at: Last update timestamp.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)
    id: str | None = Field(None, alias="_id")
    district: str = ""
    institution: str = ""
    month: str = ""
    year: str = ""
    answers: dict[str, Any] = Field(default_factory=dict)
    cumulative: dict[str, Any] | None = None
    eye_bank: list[Any] = Field(default_factory=list, alias="eyeBank")
    vision_center: list[Any] = Field(default_factory=list, alias="visionCenter")
    locked: bool = True
    created_at: datetime | None = Field(None, alias="createdAt")
    updated_at: datetime | None = Field(None, alias="updatedAt")

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, v: Any) -> str | None:
        return None if v is None else str(v)

    @field_validator("district", "institution", "month", mode="before")
    @classmethod
    def _clean_text(cls, v: Any) -> str:
        return sanitize(v)

    @field_validator("year", mode="before")
    @classmethod
    def _year_text(cls, v: Any) -> str:
        if isinstance(v, float) and v.is_integer():
            v = int(v)
        return sanitize(v)

    @field_validator("answers", mode="before")
    @classmethod
    def _answers_dict(cls, v: Any) -> dict[str, Any]:
        return v if isinstance(v, dict) else {}

    @field_validator("cumulative", mode="before")
    @classmethod
    def _cumulative_dict(cls, v: Any) -> dict[str, Any] | None:
        return v if isinstance(v, dict) and v else None

    @field_validator("eye_bank", "vision_center", mode="before")
    @classmethod
    def _rows(cls, v: Any) -> list[Any]:
        return list(v) if isinstance(v, (list, tuple)) else []

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def _lenient_ts(cls, v: Any) -> Any:
        if v is None or isinstance(v, datetime):
            return v
        if isinstance(v, str):
            try:
                return datetime.fromisoformat(v.replace("Z", "+00:00"))
            except ValueError:
                return None
        return None

    def period(self) -> Period | None:
        """The normalized period of this report, or None if it is malformed."""
        try:
            return Period.parse(self.month, self.year)
        except ValueError:
            return None

    def recency(self) -> datetime:
        """`updated_at`, else `created_at`, else the epoch (all UTC)."""
        return _as_utc(self.updated_at) or _as_utc(self.created_at) or EPOCH

    def answer_vector(self) -> Any:
        return answers_to_vector(self.answers)

    def cumulative_vector(self) -> Any | None:
        return None if self.cumulative is None else answers_to_vector(self.cumulative)

    def eye_bank_rows(self) -> list[EyeBankRow]:
        return [
            EyeBankRow.from_stored(self.eye_bank[i] if i < len(self.eye_bank) else None, i)
            for i in range(len(EYE_BANK_CATEGORIES))
        ]

    def vision_center_rows(self) -> list[VisionCenterRow]:
        rows = [VisionCenterRow.from_stored(r, i) for i, r in enumerate(self.vision_center)]
        if not rows:
            # some legacy documents flattened the table into answers
            rows = [VisionCenterRow.from_stored(self.answers, i) for i in range(MAX_VISION_CENTERS)]
        return [r for r in rows if not r.is_empty()]


class ReportSubmission(BaseModel):
    """A new monthly report as entered on the form, validated strictly."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)
    district: str = Field(..., min_length=1)
    institution: str = Field(..., min_length=1)
    month: str
    year: str
    answers: dict[str, float] = Field(default_factory=lambda: dict.fromkeys(ANSWER_KEYS, 0.0))
    eye_bank: list[EyeBankRow] = Field(
        default_factory=lambda: [EyeBankRow(category=c) for c in EYE_BANK_CATEGORIES],
        alias="eyeBank",
    )
    vision_center: list[VisionCenterRow] = Field(
        default_factory=list, alias="visionCenter", max_length=MAX_VISION_CENTERS
    )

    @field_validator("district", "institution", mode="before")
    @classmethod
    def _clean_text(cls, v: Any) -> str:
        return sanitize(v)

    @field_validator("month", mode="before")
    @classmethod
    def _month(cls, v: Any) -> str:
        return normalize_month(v)

    @field_validator("year", mode="before")
    @classmethod
    def _year(cls, v: Any) -> str:
        return normalize_year(v)

    @field_validator("answers", mode="before")
    @classmethod
    def _answers84(cls, v: Any) -> dict[str, float]:
        v = v if isinstance(v, dict) else {}
        unknown = sorted(set(v) - set(ANSWER_KEYS))
        if unknown:
            raise ValueError(f"unknown answer keys: {', '.join(unknown[:5])}")
        return {k: _strict_answer(k, v.get(k)) for k in ANSWER_KEYS}

    @field_validator("eye_bank", mode="before")
    @classmethod
    def _eye_bank_default(cls, v: Any) -> Any:
        if not v:
            return [{"category": c} for c in EYE_BANK_CATEGORIES]
        return v

    @model_validator(mode="after")
    def _eye_bank_shape(self) -> "ReportSubmission":
        if tuple(r.category for r in self.eye_bank) != EYE_BANK_CATEGORIES:
            raise ValueError("eye bank must contain exactly the rows: " + ", ".join(EYE_BANK_CATEGORIES))
        return self

    @property
    def period(self) -> Period:
        return Period(month=self.month, year=self.year)

    def has_content(self) -> bool:
        """True if any answer or table metric is non-zero."""
        if any(v > 0 for v in self.answers.values()):
            return True
        if any(v > 0 for r in self.eye_bank for v in r.metrics().values()):
            return True
        return any(v > 0 for r in self.vision_center for v in r.metrics().values())

    def to_document(self, now: datetime) -> dict[str, Any]:
        return {
            "district": self.district,
            "institution": self.institution,
            "month": self.month,
            "year": self.year,
            "answers": dict(self.answers),
            "eyeBank": [r.model_dump() for r in self.eye_bank],
            "visionCenter": [r.model_dump() for r in self.vision_center],
            "locked": True,
            "createdAt": now,
            "updatedAt": now,
        }


class CumulativeResult(BaseModel):
    """Fiscal-year cumulative vector for one institution, tagged with its tier and period."""
    model_config = ConfigDict(extra="forbid")
    district: str
    institution: str
    period: Period
    tier: Tier
    vector: list[float] = Field(..., min_length=ANSWER_SLOTS, max_length=ANSWER_SLOTS)
    month_vector: list[float] = Field(
        default_factory=lambda: [0.0] * ANSWER_SLOTS,
        min_length=ANSWER_SLOTS,
        max_length=ANSWER_SLOTS,
    )
    matched_documents: int = Field(0, ge=0)

    def matches(self, period: Period) -> bool:
        """True if this result was computed for exactly `period`."""
        return self.period == period

    def as_answers(self) -> dict[str, float]:
        return dict(zip(ANSWER_KEYS, self.vector))


class InstitutionRow(BaseModel):
    """One institution's row in the district matrix."""
    model_config = ConfigDict(extra="forbid")
    institution: str
    month_vector: list[float]
    cumulative_vector: list[float]
    tier: Tier


class DistrictTotal(BaseModel):
    model_config = ConfigDict(extra="forbid")
    month_vector: list[float]
    cumulative_vector: list[float]


class DistrictMatrix(BaseModel):
    """Per-institution month and cumulative vectors plus the district total."""
    model_config = ConfigDict(extra="forbid")
    district: str
    period: Period
    per_institution: list[InstitutionRow]
    district_total: DistrictTotal

    def matches(self, period: Period) -> bool:
        return self.period == period

    def to_frame(self, kind: Literal["month", "cumulative"] = "cumulative") -> pd.DataFrame:
        """Return a slot-by-institution DataFrame with a trailing "District Total" column.

        Args:
            kind: Which vector to tabulate.
        """
        attr = "month_vector" if kind == "month" else "cumulative_vector"
        columns = {row.institution: getattr(row, attr) for row in self.per_institution}
        columns["District Total"] = getattr(self.district_total, attr)
        return pd.DataFrame(columns, index=pd.Index(ANSWER_KEYS, name="slot"))


class VisionCenterEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")
    institution: str
    row: VisionCenterRow


class DistrictTables(BaseModel):
    """Eye-bank totals and vision-center rows for one district and month."""
    model_config = ConfigDict(extra="forbid")
    district: str
    period: Period
    tier: Tier
    eye_bank: list[EyeBankRow]
    vision_centers: list[VisionCenterEntry]

    def matches(self, period: Period) -> bool:
        return self.period == period
