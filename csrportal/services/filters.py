from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Union

from csrportal.core.errors import ValidationError
from csrportal.domain.statuses import (
    MEMBER_STATUSES,
    SUBSCRIPTION_STATUSES,
    TICKET_CATEGORIES,
    TICKET_FILTER_ALL,
    TICKET_PRIORITIES,
    TICKET_STATUSES,
)


@dataclass(frozen=True)
class SearchText:
    # Case-insensitive substring over the entity's searchable fields.
    text: str


@dataclass(frozen=True)
class StatusIs:
    status: str


@dataclass(frozen=True)
class PlanIs:
    plan_name: str


@dataclass(frozen=True)
class HasOverdueSubscriptions:
    # Member owns at least one overdue subscription (or none, when False).
    value: bool = True


@dataclass(frozen=True)
class PriorityIs:
    priority: str


@dataclass(frozen=True)
class CategoryIs:
    category: str


Predicate = Union[SearchText, StatusIs, PlanIs, HasOverdueSubscriptions, PriorityIs, CategoryIs]


@dataclass(frozen=True)
class _EntityFilters:
    """A conjunction of named predicates for one entity.

    Subclasses declare which predicate kinds apply and which status values
    are legal; anything else is rejected on construction so invalid filters
    never reach query building.
    """

    predicates: tuple[Predicate, ...] = ()

    entity: ClassVar[str] = "entity"
    allowed: ClassVar[tuple[type, ...]] = ()
    statuses: ClassVar[tuple[str, ...]] = ()

    def __post_init__(self) -> None:
        seen: set[type] = set()
        for predicate in self.predicates:
            kind = type(predicate)
            if kind not in self.allowed:
                raise ValidationError(
                    f"{kind.__name__} does not apply to {self.entity} filters",
                    field=kind.__name__,
                )
            if kind in seen:
                raise ValidationError(
                    f"Duplicate {kind.__name__} predicate", field=kind.__name__
                )
            seen.add(kind)
            self._validate(predicate)

    def _validate(self, predicate: Predicate) -> None:
        if isinstance(predicate, StatusIs) and predicate.status not in self.statuses:
            raise ValidationError(
                f"Invalid {self.entity} status: {predicate.status}",
                field="status",
                allowed=list(self.statuses),
            )
        if isinstance(predicate, PlanIs) and not predicate.plan_name.strip():
            raise ValidationError("Plan name filter must not be blank", field="planName")
        if isinstance(predicate, PriorityIs) and predicate.priority not in TICKET_PRIORITIES:
            raise ValidationError(
                f"Invalid ticket priority: {predicate.priority}",
                field="priority",
                allowed=list(TICKET_PRIORITIES),
            )
        if isinstance(predicate, CategoryIs) and predicate.category not in TICKET_CATEGORIES:
            raise ValidationError(
                f"Invalid ticket category: {predicate.category}",
                field="category",
                allowed=list(TICKET_CATEGORIES),
            )

    def get(self, kind: type) -> Any:
        for predicate in self.predicates:
            if isinstance(predicate, kind):
                return predicate
        return None

    @property
    def search(self) -> str | None:
        # Blank search text means "match everything".
        predicate = self.get(SearchText)
        if predicate is None:
            return None
        text = predicate.text.strip()
        return text or None

    @property
    def status(self) -> str | None:
        predicate = self.get(StatusIs)
        return predicate.status if predicate else None


def _search_predicate(search: str | None) -> list[Predicate]:
    if search is None or not search.strip():
        return []
    return [SearchText(search.strip())]


@dataclass(frozen=True)
class MemberFilters(_EntityFilters):
    entity: ClassVar[str] = "member"
    allowed: ClassVar[tuple[type, ...]] = (SearchText, StatusIs, HasOverdueSubscriptions)
    statuses: ClassVar[tuple[str, ...]] = MEMBER_STATUSES

    @classmethod
    def from_params(
        cls,
        *,
        search: str | None = None,
        status: str | None = None,
        has_overdue_subscriptions: bool | None = None,
    ) -> "MemberFilters":
        predicates = _search_predicate(search)
        if status:
            predicates.append(StatusIs(status))
        if has_overdue_subscriptions is not None:
            predicates.append(HasOverdueSubscriptions(has_overdue_subscriptions))
        return cls(tuple(predicates))

    @property
    def has_overdue_subscriptions(self) -> bool | None:
        predicate = self.get(HasOverdueSubscriptions)
        return predicate.value if predicate else None


@dataclass(frozen=True)
class SubscriptionFilters(_EntityFilters):
    entity: ClassVar[str] = "subscription"
    allowed: ClassVar[tuple[type, ...]] = (SearchText, StatusIs, PlanIs)
    statuses: ClassVar[tuple[str, ...]] = SUBSCRIPTION_STATUSES

    @classmethod
    def from_params(
        cls,
        *,
        search: str | None = None,
        status: str | None = None,
        plan_name: str | None = None,
    ) -> "SubscriptionFilters":
        predicates = _search_predicate(search)
        if status:
            predicates.append(StatusIs(status))
        if plan_name is not None:
            predicates.append(PlanIs(plan_name))
        return cls(tuple(predicates))

    @property
    def plan_name(self) -> str | None:
        predicate = self.get(PlanIs)
        return predicate.plan_name if predicate else None


@dataclass(frozen=True)
class TicketFilters(_EntityFilters):
    entity: ClassVar[str] = "ticket"
    allowed: ClassVar[tuple[type, ...]] = (SearchText, StatusIs, PriorityIs, CategoryIs)
    statuses: ClassVar[tuple[str, ...]] = TICKET_STATUSES

    @classmethod
    def from_params(
        cls,
        *,
        search: str | None = None,
        status: str | None = None,
        priority: str | None = None,
        category: str | None = None,
    ) -> "TicketFilters":
        predicates = _search_predicate(search)
        if status and status != TICKET_FILTER_ALL:
            predicates.append(StatusIs(status))
        if priority and priority != TICKET_FILTER_ALL:
            predicates.append(PriorityIs(priority))
        if category and category != TICKET_FILTER_ALL:
            predicates.append(CategoryIs(category))
        return cls(tuple(predicates))

    @property
    def priority(self) -> str | None:
        predicate = self.get(PriorityIs)
        return predicate.priority if predicate else None

    @property
    def category(self) -> str | None:
        predicate = self.get(CategoryIs)
        return predicate.category if predicate else None


def like_pattern(text: str) -> str:
    # Escape LIKE wildcards so user input matches literally.
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"
