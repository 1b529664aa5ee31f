"""Clock punch reconciliation into per-day worked time."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable

from weekly_payroll.models.timesheet import RawPunch


@dataclass
class DailyBreakdown:
    """Worked time for one calendar day, in whole minutes."""

    day: date
    raw_minutes: int = 0
    lunch_deduction_minutes: int = 0
    aux_deduction_minutes: int = 0
    net_minutes: int = 0
    primary_punches: int = 0
    aux_punches: int = 0
    intervals: list[tuple[str, str]] = field(default_factory=list)

    @property
    def deduction_minutes(self) -> int:
        return self.lunch_deduction_minutes + self.aux_deduction_minutes

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.day.isoformat(),
            "raw_minutes": self.raw_minutes,
            "lunch_deduction_minutes": self.lunch_deduction_minutes,
            "aux_deduction_minutes": self.aux_deduction_minutes,
            "deduction_minutes": self.deduction_minutes,
            "net_minutes": self.net_minutes,
            "primary_punches": self.primary_punches,
            "aux_punches": self.aux_punches,
            "intervals": [list(pair) for pair in self.intervals],
        }


@dataclass
class ReconciliationResult:
    """Proposed weekly totals for one employee. Reviewed before approval."""

    calculated_total_hours: int
    calculated_total_minutes: int
    lunch_deduction_minutes: int
    bathroom_time_minutes: int
    daily_breakdown: list[DailyBreakdown]
    warnings: list[str]

    @property
    def net_minutes(self) -> int:
        return self.calculated_total_hours * 60 + self.calculated_total_minutes

    def to_detail(self) -> dict[str, Any]:
        """Serialisable form stored on the pending timesheet."""
        return {
            "calculated_total_hours": self.calculated_total_hours,
            "calculated_total_minutes": self.calculated_total_minutes,
            "lunch_deduction_minutes": self.lunch_deduction_minutes,
            "bathroom_time_minutes": self.bathroom_time_minutes,
            "daily_breakdown": [d.to_dict() for d in self.daily_breakdown],
            "warnings": list(self.warnings),
        }


class PunchReconciler:
    """Pairs punches into worked intervals and applies daily deductions.

    Per calendar day:
    - primary-channel punches are sorted and paired in order (in, out, in,
      out, ...); an odd count leaves a trailing unpaired punch that is
      excluded and reported
    - auxiliary-channel punches (break tracking) are paired the same way;
      their total is deducted as aux time
    - a fixed lunch deduction applies once raw worked time exceeds the
      threshold
    - punches on the same channel closer than the double-punch window
      collapse into one
    """

    def __init__(
        self,
        *,
        lunch_deduction_minutes: int = 30,
        lunch_threshold_minutes: int = 300,
        aux_device_keywords: Iterable[str] = ("bathroom", "break"),
        double_punch_window_seconds: int = 60,
    ):
        self.lunch_deduction_minutes = lunch_deduction_minutes
        self.lunch_threshold_minutes = lunch_threshold_minutes
        self.aux_device_keywords = tuple(k.lower() for k in aux_device_keywords)
        self.double_punch_window_seconds = double_punch_window_seconds

    @classmethod
    def from_settings(cls, settings: Any) -> PunchReconciler:
        return cls(
            lunch_deduction_minutes=settings.lunch_deduction_minutes,
            lunch_threshold_minutes=settings.lunch_threshold_minutes,
            aux_device_keywords=settings.aux_device_keywords,
            double_punch_window_seconds=settings.double_punch_window_seconds,
        )

    def is_auxiliary(self, punch: RawPunch) -> bool:
        label = punch.device_label.lower()
        return any(keyword in label for keyword in self.aux_device_keywords)

    def is_primary(self, punch: RawPunch) -> bool:
        return not self.is_auxiliary(punch)

    def reconcile(self, punches: Iterable[RawPunch]) -> ReconciliationResult:
        """Reconcile one employee's punches from one import."""
        by_day: dict[date, list[RawPunch]] = defaultdict(list)
        for punch in punches:
            by_day[punch.punch_date].append(punch)

        warnings: list[str] = []
        breakdown: list[DailyBreakdown] = []
        for day in sorted(by_day):
            breakdown.append(self._reconcile_day(day, by_day[day], warnings))

        total_net = sum(d.net_minutes for d in breakdown)
        return ReconciliationResult(
            calculated_total_hours=total_net // 60,
            calculated_total_minutes=total_net % 60,
            lunch_deduction_minutes=sum(d.lunch_deduction_minutes for d in breakdown),
            bathroom_time_minutes=sum(d.aux_deduction_minutes for d in breakdown),
            daily_breakdown=breakdown,
            warnings=warnings,
        )

    def _reconcile_day(
        self, day: date, punches: list[RawPunch], warnings: list[str]
    ) -> DailyBreakdown:
        primary = self._collapse(
            day, sorted(p.punch_timestamp for p in punches if self.is_primary(p)), warnings
        )
        auxiliary = self._collapse(
            day, sorted(p.punch_timestamp for p in punches if self.is_auxiliary(p)), warnings
        )

        result = DailyBreakdown(
            day=day, primary_punches=len(primary), aux_punches=len(auxiliary)
        )

        if len(primary) % 2:
            warnings.append(
                f"{day.isoformat()}: unpaired punch at "
                f"{primary[-1].strftime('%H:%M')} excluded from total"
            )
        for clock_in, clock_out in _pairs(primary):
            result.raw_minutes += _minutes_between(clock_in, clock_out)
            result.intervals.append(
                (clock_in.strftime("%H:%M"), clock_out.strftime("%H:%M"))
            )

        if len(auxiliary) % 2:
            warnings.append(
                f"{day.isoformat()}: unpaired break punch at "
                f"{auxiliary[-1].strftime('%H:%M')} ignored"
            )
        for start, end in _pairs(auxiliary):
            result.aux_deduction_minutes += _minutes_between(start, end)

        if result.raw_minutes > self.lunch_threshold_minutes:
            result.lunch_deduction_minutes = self.lunch_deduction_minutes

        result.net_minutes = max(0, result.raw_minutes - result.deduction_minutes)
        if primary and not result.raw_minutes:
            warnings.append(f"{day.isoformat()}: no complete in/out pair")
        return result

    def _collapse(
        self, day: date, stamps: list[datetime], warnings: list[str]
    ) -> list[datetime]:
        """Drop punches repeated within the double-punch window."""
        kept: list[datetime] = []
        for stamp in stamps:
            if kept and (stamp - kept[-1]).total_seconds() <= self.double_punch_window_seconds:
                warnings.append(
                    f"{day.isoformat()}: duplicate punch at {stamp.strftime('%H:%M:%S')} ignored"
                )
                continue
            kept.append(stamp)
        return kept


def _pairs(stamps: list[datetime]) -> list[tuple[datetime, datetime]]:
    return [(stamps[i], stamps[i + 1]) for i in range(0, len(stamps) - 1, 2)]


def _minutes_between(start: datetime, end: datetime) -> int:
    return int((end - start).total_seconds() // 60)
