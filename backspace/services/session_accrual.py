"""
SessionAccrual - turns an open session into money.

Core algorithm:
1. Snapshot rate, cap and subscription coverage at start
2. Time cost = whole elapsed minutes x hourly rate, rounded once, capped
3. Inventory cost = sum(quantity x unit price), charged regardless of coverage
4. On close, emit invoice line items and free the resource in the same step

Every operation returns new model instances; inputs are never mutated.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel

from backspace.core import money
from backspace.models.base import ensure_utc
from backspace.models.invoice import LineItem
from backspace.models.inventory import InventoryItem
from backspace.models.resource import Resource
from backspace.models.session import InventoryConsumption, Session, SessionStatus
from backspace.models.subscription import Subscription
from backspace.services.subscription_coverage import SubscriptionCoverage
from backspace.utils.billing_validation import (
    InsufficientStock,
    InvalidAmount,
    InvalidState,
    ResourceUnavailable,
)

logger = logging.getLogger(__name__)

_MINUTES_PER_HOUR = Decimal(60)


class InvoiceDraft(BaseModel):
    """Billable outcome of a closed session, not yet an invoice."""
    line_items: List[LineItem]
    total: int
    time_cost: int
    inventory_cost: int
    duration_minutes: int


class SessionClosure(BaseModel):
    draft: InvoiceDraft
    session: Session
    resource: Resource


class SessionAccrual:
    @staticmethod
    def start(
        customer_id: str,
        resource: Resource,
        subscriptions: Iterable[Subscription],
        now: datetime,
    ) -> Tuple[Session, Resource]:
        """Open a session on an available resource; returns (session, occupied resource)."""
        now = ensure_utc(now)
        if not resource.is_available:
            raise ResourceUnavailable(f"Resource '{resource.name}' is already occupied")

        coverage = SubscriptionCoverage.resolve(subscriptions, now, customer_id)
        session = Session(
            customer_id=customer_id,
            resource_id=resource.id,
            resource_name=resource.name,
            started_at=now,
            resource_rate_at_start=resource.rate_per_hour,
            resource_max_price_at_start=resource.max_price,
            is_subscription_covered=coverage.is_covered,
            subscription_id=coverage.subscription_id,
        )
        occupied = resource.model_copy(update={"is_available": False})

        logger.info(
            "Session %s started: customer=%s resource=%s covered=%s",
            session.id, customer_id, resource.id, coverage.is_covered
        )
        return session, occupied

    @staticmethod
    def elapsed_minutes(session: Session, now: datetime) -> int:
        seconds = (ensure_utc(now) - session.started_at).total_seconds()
        if seconds <= 0:
            return 0
        return int(seconds // 60)

    @staticmethod
    def current_cost(session: Session, now: datetime) -> int:
        """Time cost accrued so far. Pure function of (session, now)."""
        if session.is_subscription_covered:
            return 0

        minutes = SessionAccrual.elapsed_minutes(session, now)
        cost = money.multiply_by_rate(
            Decimal(minutes) / _MINUTES_PER_HOUR, session.resource_rate_at_start
        )

        cap = session.resource_max_price_at_start
        if cap and cost > cap:
            return cap
        return cost

    @staticmethod
    def inventory_cost(session: Session) -> int:
        return money.sum_minor(c.quantity * c.unit_price for c in session.inventory_consumptions)

    # ===== INVENTORY =====

    @staticmethod
    def add_consumption(
        session: Session,
        item: InventoryItem,
        quantity: int,
        now: datetime,
    ) -> Tuple[Session, InventoryItem]:
        """Attach `quantity` units of `item`; returns (session, item with stock deducted)."""
        SessionAccrual._require_active(session)
        now = ensure_utc(now)
        if quantity <= 0:
            raise InvalidAmount(f"Quantity must be positive: {quantity}")
        if item.quantity < quantity:
            raise InsufficientStock(
                f"Insufficient stock for '{item.name}': only {item.quantity} available"
            )

        consumption = InventoryConsumption(
            item_id=item.id,
            item_name=item.name,
            quantity=quantity,
            unit_price=item.price,
            added_at=now,
        )
        updated = session.model_copy(
            update={"inventory_consumptions": [*session.inventory_consumptions, consumption]}
        )
        stock = item.model_copy(update={"quantity": item.quantity - quantity})

        logger.debug("Session %s: +%d x %s", session.id, quantity, item.name)
        return updated, stock

    @staticmethod
    def update_consumption(
        session: Session,
        item: InventoryItem,
        consumption_id: str,
        quantity: int,
    ) -> Tuple[Session, InventoryItem]:
        """Change a consumption's quantity; zero or less removes it."""
        if quantity <= 0:
            return SessionAccrual.remove_consumption(session, item, consumption_id)

        SessionAccrual._require_active(session)
        consumption = SessionAccrual._find_consumption(session, item, consumption_id)

        diff = quantity - consumption.quantity
        if diff > 0 and item.quantity < diff:
            raise InsufficientStock(
                f"Insufficient stock for '{item.name}': only {item.quantity} more available"
            )

        consumptions = [
            c.model_copy(update={"quantity": quantity}) if c.consumption_id == consumption_id else c
            for c in session.inventory_consumptions
        ]
        updated = session.model_copy(update={"inventory_consumptions": consumptions})
        stock = item.model_copy(update={"quantity": item.quantity - diff})
        return updated, stock

    @staticmethod
    def remove_consumption(
        session: Session,
        item: InventoryItem,
        consumption_id: str,
    ) -> Tuple[Session, InventoryItem]:
        """Drop a consumption and return its units to stock."""
        SessionAccrual._require_active(session)
        consumption = SessionAccrual._find_consumption(session, item, consumption_id)

        consumptions = [
            c for c in session.inventory_consumptions if c.consumption_id != consumption_id
        ]
        updated = session.model_copy(update={"inventory_consumptions": consumptions})
        stock = item.model_copy(update={"quantity": item.quantity + consumption.quantity})
        return updated, stock

    # ===== CLOSE =====

    @staticmethod
    def close(session: Session, resource: Resource, now: datetime) -> SessionClosure:
        """
        End the session.

        Returns the invoice draft, the ended session and the freed resource
        together, so there is no state where the session is closed but the
        resource still shows occupied.
        """
        SessionAccrual._require_active(session)
        now = ensure_utc(now)
        if now < session.started_at:
            raise InvalidAmount("Session cannot end before it started")
        if resource.id != session.resource_id:
            raise InvalidState(
                f"Resource {resource.id} does not belong to session {session.id}"
            )

        time_cost = SessionAccrual.current_cost(session, now)
        inventory_cost = SessionAccrual.inventory_cost(session)
        resource_name = session.resource_name or resource.name

        line_items: List[LineItem] = []
        if not (session.is_subscription_covered and time_cost == 0):
            line_items.append(LineItem(
                description=f"Session at {resource_name}",
                quantity=1,
                rate=time_cost,
                amount=time_cost,
            ))
        line_items.extend(SessionAccrual._inventory_line_items(session.inventory_consumptions))

        draft = InvoiceDraft(
            line_items=line_items,
            total=money.add(time_cost, inventory_cost),
            time_cost=time_cost,
            inventory_cost=inventory_cost,
            duration_minutes=SessionAccrual.elapsed_minutes(session, now),
        )
        ended = session.model_copy(update={"status": SessionStatus.ENDED, "ended_at": now})
        freed = resource.model_copy(update={"is_available": True})

        logger.info(
            "Session %s closed after %d min: time=%s inventory=%s total=%s",
            session.id, draft.duration_minutes, money.format_major(time_cost),
            money.format_major(inventory_cost), money.format_major(draft.total)
        )
        return SessionClosure(draft=draft, session=ended, resource=freed)

    # ===== PRIVATE HELPERS =====

    @staticmethod
    def _require_active(session: Session) -> None:
        if session.status != SessionStatus.ACTIVE:
            raise InvalidState(f"Session {session.id} is already closed")

    @staticmethod
    def _find_consumption(
        session: Session, item: InventoryItem, consumption_id: str
    ) -> InventoryConsumption:
        consumption: Optional[InventoryConsumption] = next(
            (c for c in session.inventory_consumptions if c.consumption_id == consumption_id),
            None,
        )
        if consumption is None:
            raise InvalidState(f"Consumption {consumption_id} not found on session {session.id}")
        if consumption.item_id != item.id:
            raise InvalidState(f"Consumption {consumption_id} is not for item {item.id}")
        return consumption

    @staticmethod
    def _inventory_line_items(consumptions: List[InventoryConsumption]) -> List[LineItem]:
        """One line per distinct (item, unit price), in order of first use."""
        grouped: Dict[Tuple[str, int], LineItem] = {}
        for c in consumptions:
            key = (c.item_id, c.unit_price)
            line = grouped.get(key)
            if line is None:
                grouped[key] = LineItem(
                    description=c.item_name,
                    quantity=c.quantity,
                    rate=c.unit_price,
                    amount=c.quantity * c.unit_price,
                )
            else:
                line.quantity += c.quantity
                line.amount += c.quantity * c.unit_price
        return list(grouped.values())
