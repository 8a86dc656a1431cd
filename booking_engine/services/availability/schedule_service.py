# ============================================================================
# booking_engine/services/availability/schedule_service.py
# Host-owned schedules and their rules
# ============================================================================
"""Service for managing availability schedules"""
from typing import List, Optional, Sequence
from uuid import UUID
import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from booking_engine.core.exceptions import (
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from booking_engine.models.availability import AvailabilityRule, AvailabilitySchedule, RuleType
from booking_engine.models.event_type import EventType
from booking_engine.models.host import Host
from booking_engine.schemas.availability import AvailabilityRuleIn
from booking_engine.utils.time_intervals import load_timezone, rule_end

logger = logging.getLogger(__name__)


class ScheduleService:
    """
    Schedules, rules and the one-default-per-host invariant.

    Every write locks the host row first so two requests switching the
    default for the same host run one after the other.
    """

    @staticmethod
    def validate_rules(rules: Sequence[AvailabilityRuleIn]) -> None:
        """Reject malformed rules before anything touches the store."""
        for index, rule in enumerate(rules):
            where = f"rules[{index}]"

            if rule.rule_type == RuleType.WEEKLY:
                if rule.day_of_week is None or rule.specific_date is not None:
                    raise ValidationError(f"{where}: weekly rules need day_of_week and no specific_date",
                                          code="invalid_rule")
                if rule.start_time is None or rule.end_time is None:
                    raise ValidationError(f"{where}: weekly rules need start_time and end_time",
                                          code="invalid_rule")
            else:
                if rule.specific_date is None or rule.day_of_week is not None:
                    raise ValidationError(f"{where}: overrides need specific_date and no day_of_week",
                                          code="invalid_rule")
                if (rule.start_time is None) != (rule.end_time is None):
                    raise ValidationError(f"{where}: give both start_time and end_time or neither",
                                          code="invalid_rule")
                if rule.is_available and rule.start_time is None:
                    raise ValidationError(f"{where}: an available override needs a time range",
                                          code="invalid_rule")

            if rule.start_time is not None and rule.start_time >= rule_end(rule.end_time):
                raise ValidationError(f"{where}: start_time must be before end_time", code="invalid_rule")

    @staticmethod
    def _build_rules(rules: Sequence[AvailabilityRuleIn]) -> List[AvailabilityRule]:
        return [
            AvailabilityRule(
                rule_type=rule.rule_type.value,
                day_of_week=rule.day_of_week,
                specific_date=rule.specific_date,
                start_time=rule.start_time,
                end_time=rule.end_time,
                is_available=rule.is_available,
            )
            for rule in rules
        ]

    @staticmethod
    def _lock_host(db: Session, host_id: UUID) -> Host:
        host = db.query(Host).filter(Host.id == host_id).with_for_update().first()
        if not host:
            raise NotFoundError("Host not found", code="host_not_found")
        return host

    @staticmethod
    def _owned_schedule(db: Session, host_id: UUID, schedule_id: UUID) -> AvailabilitySchedule:
        schedule = db.query(AvailabilitySchedule).filter(AvailabilitySchedule.id == schedule_id).first()
        if not schedule:
            raise NotFoundError("Schedule not found", code="schedule_not_found")
        if schedule.host_id != host_id:
            raise UnauthorizedError("Schedule belongs to another host")
        return schedule

    @staticmethod
    def _unset_other_defaults(db: Session, host_id: UUID, keep_id: Optional[UUID]) -> None:
        # Emitted before the new default is flushed so the partial unique
        # index never sees two defaults
        query = db.query(AvailabilitySchedule).filter(
            AvailabilitySchedule.host_id == host_id,
            AvailabilitySchedule.is_default.is_(True)
        )
        if keep_id is not None:
            query = query.filter(AvailabilitySchedule.id != keep_id)
        query.update({AvailabilitySchedule.is_default: False}, synchronize_session="fetch")

    @staticmethod
    def create_schedule(
            db: Session,
            host_id: UUID,
            name: str,
            timezone: str,
            is_default: bool = False,
            rules: Sequence[AvailabilityRuleIn] = ()
    ) -> AvailabilitySchedule:
        """Create a schedule. A host's first schedule is always the default."""
        load_timezone(timezone, error_cls=ValidationError)
        ScheduleService.validate_rules(rules)

        try:
            ScheduleService._lock_host(db, host_id)

            has_schedules = db.query(AvailabilitySchedule.id).filter(
                AvailabilitySchedule.host_id == host_id
            ).first() is not None
            make_default = is_default or not has_schedules

            if make_default:
                ScheduleService._unset_other_defaults(db, host_id, keep_id=None)

            schedule = AvailabilitySchedule(
                host_id=host_id,
                name=name,
                timezone=timezone,
                is_default=make_default,
                rules=ScheduleService._build_rules(rules),
            )
            db.add(schedule)
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(schedule)
        logger.info(f"Created schedule {schedule.id} for host {host_id} (default={schedule.is_default})")
        return schedule

    @staticmethod
    def list_schedules(db: Session, host_id: UUID) -> List[AvailabilitySchedule]:
        """Default schedule first, then by name."""
        return db.query(AvailabilitySchedule).filter(
            AvailabilitySchedule.host_id == host_id
        ).order_by(
            AvailabilitySchedule.is_default.desc(),
            AvailabilitySchedule.name.asc()
        ).all()

    @staticmethod
    def get_schedule(db: Session, host_id: UUID, schedule_id: UUID) -> AvailabilitySchedule:
        return ScheduleService._owned_schedule(db, host_id, schedule_id)

    @staticmethod
    def update_schedule(
            db: Session,
            host_id: UUID,
            schedule_id: UUID,
            name: Optional[str] = None,
            timezone: Optional[str] = None,
            is_default: Optional[bool] = None
    ) -> AvailabilitySchedule:
        """
        Rename, re-zone or make default.

        Setting is_default unsets the previous default in the same transaction.
        Clearing it directly is rejected: pick another schedule as default.
        """
        if timezone is not None:
            load_timezone(timezone, error_cls=ValidationError)

        try:
            ScheduleService._lock_host(db, host_id)
            schedule = ScheduleService._owned_schedule(db, host_id, schedule_id)

            if is_default is False and schedule.is_default:
                raise InvalidStateError(
                    "A host always has one default schedule; set another schedule as default instead",
                    code="default_required"
                )

            if is_default and not schedule.is_default:
                ScheduleService._unset_other_defaults(db, host_id, keep_id=schedule.id)
                schedule.is_default = True

            if name is not None:
                schedule.name = name
            if timezone is not None:
                schedule.timezone = timezone

            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(schedule)
        return schedule

    @staticmethod
    def replace_rules(
            db: Session,
            host_id: UUID,
            schedule_id: UUID,
            rules: Sequence[AvailabilityRuleIn]
    ) -> AvailabilitySchedule:
        """Swap the full rule set in one transaction (delete, then insert)."""
        ScheduleService.validate_rules(rules)

        try:
            ScheduleService._lock_host(db, host_id)
            schedule = ScheduleService._owned_schedule(db, host_id, schedule_id)

            db.query(AvailabilityRule).filter(
                AvailabilityRule.schedule_id == schedule.id
            ).delete(synchronize_session=False)
            db.expire(schedule, ["rules"])

            for rule in ScheduleService._build_rules(rules):
                rule.schedule_id = schedule.id
                db.add(rule)

            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(schedule)
        logger.info(f"Replaced rules of schedule {schedule.id}: {len(rules)} rules")
        return schedule

    @staticmethod
    def delete_schedule(db: Session, host_id: UUID, schedule_id: UUID) -> None:
        """
        Delete a schedule.

        Rejected when it is the host's last schedule or when an active event
        type depends on it (explicitly, or through the default fallback).
        Deleting the default promotes the oldest remaining schedule.
        """
        try:
            ScheduleService._lock_host(db, host_id)
            schedule = ScheduleService._owned_schedule(db, host_id, schedule_id)

            others = db.query(AvailabilitySchedule).filter(
                AvailabilitySchedule.host_id == host_id,
                AvailabilitySchedule.id != schedule.id
            ).order_by(AvailabilitySchedule.created_at.asc()).all()

            if not others:
                raise InvalidStateError("Cannot delete the host's last schedule", code="last_schedule")

            uses_schedule = EventType.availability_schedule_id == schedule.id
            if schedule.is_default:
                uses_schedule = or_(uses_schedule, EventType.availability_schedule_id.is_(None))

            dependants = db.query(EventType.id).filter(
                EventType.host_id == host_id,
                EventType.is_active.is_(True),
                uses_schedule
            ).count()
            if dependants:
                raise InvalidStateError(
                    f"Schedule is used by {dependants} active event type(s)",
                    code="schedule_in_use"
                )

            was_default = schedule.is_default
            db.delete(schedule)
            db.flush()

            if was_default:
                others[0].is_default = True

            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(f"Deleted schedule {schedule_id} of host {host_id}")
