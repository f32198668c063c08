"""
Order Service

Buyer/seller order lifecycle. Each action locks the order row, checks the
transition table and the actor's role on the order, applies the change and
commits; the counter-party is notified only after the commit. A rejected
action leaves the order exactly as it was.
"""

import logging
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Awaitable, Callable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.domain.clock import utcnow
from marketplace.domain.notification import NotificationType, PendingNotification
from marketplace.domain.order import (
    ActorRole,
    CreateOrderRequest,
    OrderListResponse,
    OrderResponse,
    OrderStatus,
    ReviewRequest,
    ReviewResponse,
    authorize_transition,
    validate_progress,
)
from marketplace.infrastructure.db.database import DatabaseManager
from marketplace.infrastructure.db.models.order import OrderModel
from marketplace.infrastructure.db.models.review import ReviewModel
from marketplace.infrastructure.db.models.transaction import (
    TransactionModel,
    TransactionStatus,
    TransactionType,
)
from marketplace.infrastructure.db.repositories.order_repository import (
    GigRepository,
    OrderRepository,
    ReviewRepository,
)
from marketplace.infrastructure.db.repositories.transaction_repository import (
    TransactionRepository,
)
from marketplace.infrastructure.exceptions import (
    DuplicateError,
    ForbiddenActionError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from marketplace.infrastructure.services.notifier import Notifier


logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

# Applies the side effects of a transition to the locked order
Mutation = Callable[[AsyncSession, OrderModel, datetime], Awaitable[None]]


class OrderService:
    """
    Order lifecycle operations.

    Args:
        db: Database manager built at startup
        notifier: Post-commit notification dispatcher
        platform_fee_percentage: Share of the gig price kept by the platform
    """

    def __init__(
        self,
        db: DatabaseManager,
        notifier: Notifier,
        platform_fee_percentage: float = 10.0,
    ):
        self._db = db
        self._notifier = notifier
        self._fee_rate = Decimal(str(platform_fee_percentage)) / Decimal(100)

    # =========================================================================
    # Creation
    # =========================================================================

    async def create(self, buyer_id: str, request: CreateOrderRequest) -> OrderResponse:
        """
        Place an order against an active gig.

        The due date is fixed here (now + gig delivery days) and never moves.

        Raises:
            NotFoundError: Gig missing or no longer active
            ForbiddenActionError: Buyer is the gig's seller
        """
        async with self._db.session() as session:
            gig = await GigRepository(session).get_by_id(request.gig_id)
            if gig is None or not gig.is_active:
                raise NotFoundError(f"Gig {request.gig_id} not found", operation="create", table="gigs")
            if gig.seller_id == buyer_id:
                raise ForbiddenActionError("You cannot order your own gig")

            now = utcnow()
            price = Decimal(gig.price).quantize(CENT)
            order = OrderModel(
                gig_id=gig.id,
                buyer_id=buyer_id,
                seller_id=gig.seller_id,
                price=price,
                platform_fee=(price * self._fee_rate).quantize(CENT, rounding=ROUND_HALF_UP),
                requirements=request.requirements,
                status=OrderStatus.PENDING.value,
                progress=0,
                deliverables=[],
                revisions_allowed=gig.revisions_allowed,
                due_date=now + timedelta(days=gig.delivery_time_days),
                created_at=now,
                updated_at=now,
            )
            await OrderRepository(session).add(order)
            gig_title = gig.title

        logger.info(f"Order {order.id} placed by {buyer_id} on gig {order.gig_id}")
        await self._notifier.deliver([
            PendingNotification(
                order.seller_id,
                "New Order",
                f'You received a new order for "{gig_title}".',
                NotificationType.ORDER_UPDATE,
                {"orderId": order.id},
            )
        ])
        return self._to_response(order)

    # =========================================================================
    # Transitions
    # =========================================================================

    async def start(
        self,
        order_id: str,
        actor_id: str,
        is_admin: bool = False,
        progress: Optional[int] = None,
    ) -> OrderResponse:
        """Seller accepts the order: PENDING -> IN_PROGRESS."""

        async def mutate(session: AsyncSession, order: OrderModel, now: datetime) -> None:
            if progress is not None:
                order.progress = validate_progress(order.progress, progress)

        return await self._transition(
            order_id, actor_id, is_admin, OrderStatus.IN_PROGRESS, mutate,
            "Order Started", "The seller started working on your order.",
        )

    async def deliver(
        self,
        order_id: str,
        actor_id: str,
        deliverables: List[str],
        is_admin: bool = False,
        progress: Optional[int] = None,
    ) -> OrderResponse:
        """Seller delivers: IN_PROGRESS -> DELIVERED. Progress defaults to 100."""

        async def mutate(session: AsyncSession, order: OrderModel, now: datetime) -> None:
            order.progress = validate_progress(order.progress, 100 if progress is None else progress)
            # Reassign so the JSON column is flagged dirty
            order.deliverables = [*(order.deliverables or []), *deliverables]
            order.delivered_at = now

        return await self._transition(
            order_id, actor_id, is_admin, OrderStatus.DELIVERED, mutate,
            "Order Delivered", "Your order has been delivered. Please review and accept it.",
        )

    async def accept(self, order_id: str, actor_id: str, is_admin: bool = False) -> OrderResponse:
        """Buyer accepts the delivery: DELIVERED -> COMPLETED."""

        async def mutate(session: AsyncSession, order: OrderModel, now: datetime) -> None:
            order.completed_at = now

        return await self._transition(
            order_id, actor_id, is_admin, OrderStatus.COMPLETED, mutate,
            "Order Completed", "The buyer accepted your delivery.",
        )

    async def cancel(self, order_id: str, actor_id: str, is_admin: bool = False) -> OrderResponse:
        """Either party cancels before delivery."""

        async def mutate(session: AsyncSession, order: OrderModel, now: datetime) -> None:
            order.cancelled_at = now

        return await self._transition(
            order_id, actor_id, is_admin, OrderStatus.CANCELLED, mutate,
            "Order Cancelled", "An order you are part of was cancelled.",
        )

    async def dispute(self, order_id: str, actor_id: str, is_admin: bool = False) -> OrderResponse:
        """Either party opens a dispute before completion."""
        return await self._transition(
            order_id, actor_id, is_admin, OrderStatus.DISPUTED, None,
            "Order Disputed", "A dispute was opened on your order.",
        )

    async def refund(self, order_id: str, actor_id: str, is_admin: bool = False) -> OrderResponse:
        """
        Admin refunds a completed order: COMPLETED -> REFUNDED.

        Writes a REFUND ledger row in the same unit of work.
        """

        async def mutate(session: AsyncSession, order: OrderModel, now: datetime) -> None:
            ledger = TransactionRepository(session)
            reference = f"refund_{order.id}"
            if await ledger.get_by_payment(reference, gateway="platform") is None:
                await ledger.add(TransactionModel(
                    gateway="platform",
                    external_payment_id=reference,
                    owner_id=order.buyer_id,
                    order_id=order.id,
                    amount=order.price,
                    platform_fee=Decimal("0.00"),
                    type=TransactionType.REFUND.value,
                    status=TransactionStatus.PENDING.value,
                    description=f"Refund for order {order.id}",
                    event_data={"event": "order.refunded", "actor": actor_id},
                ))

        return await self._transition(
            order_id, actor_id, is_admin, OrderStatus.REFUNDED, mutate,
            "Order Refunded", "An order you are part of was refunded.",
        )

    async def update_progress(
        self,
        order_id: str,
        actor_id: str,
        progress: int,
        is_admin: bool = False,
    ) -> OrderResponse:
        """
        Seller reports progress on an order being worked on.

        Raises:
            ForbiddenActionError: Actor is not the seller
            InvalidTransitionError: Order not IN_PROGRESS, or progress decreases
            ValidationError: Progress outside 0-100
        """
        async with self._db.session() as session:
            order = await self._load_locked(session, order_id)
            roles = self._roles(order, actor_id, is_admin)
            if ActorRole.SELLER not in roles:
                raise ForbiddenActionError("Only the seller can update order progress")
            if order.status != OrderStatus.IN_PROGRESS.value:
                raise InvalidTransitionError("order progress", order.status, f"{progress}%")
            order.progress = validate_progress(order.progress, progress)
            order.updated_at = utcnow()
            await OrderRepository(session).add(order)

        await self._notifier.deliver([
            PendingNotification(
                order.buyer_id,
                "Order Progress Updated",
                f"Your order is now {order.progress}% complete.",
                NotificationType.ORDER_UPDATE,
                {"orderId": order.id, "progress": order.progress},
            )
        ])
        return self._to_response(order)

    async def _transition(
        self,
        order_id: str,
        actor_id: str,
        is_admin: bool,
        target: OrderStatus,
        mutate: Optional[Mutation],
        title: str,
        body: str,
    ) -> OrderResponse:
        async with self._db.session() as session:
            order = await self._load_locked(session, order_id)
            roles = self._roles(order, actor_id, is_admin)
            if not roles:
                raise ForbiddenActionError("You are not a party to this order")

            current = OrderStatus(order.status)
            authorize_transition(current, target, roles)

            now = utcnow()
            if mutate is not None:
                await mutate(session, order, now)
            order.status = target.value
            order.updated_at = now
            await OrderRepository(session).add(order)

        logger.info(f"Order {order.id}: {current.value} -> {target.value} by {actor_id}")
        outbox = [
            PendingNotification(
                recipient,
                title,
                body,
                NotificationType.ORDER_UPDATE,
                {"orderId": order.id, "status": target.value},
            )
            for recipient in self._counterparties(order, actor_id)
        ]
        await self._notifier.deliver(outbox)
        return self._to_response(order)

    # =========================================================================
    # Reviews
    # =========================================================================

    async def review(
        self,
        order_id: str,
        actor_id: str,
        request: ReviewRequest,
    ) -> ReviewResponse:
        """
        Buyer reviews a completed order, once.

        Updates the gig's rating average and review count in the same unit.

        Raises:
            ForbiddenActionError: Actor is not the buyer
            InvalidTransitionError: Order not COMPLETED
            DuplicateError: Order already reviewed
        """
        try:
            async with self._db.session() as session:
                order = await self._load_locked(session, order_id)
                if order.buyer_id != actor_id:
                    raise ForbiddenActionError("Only the buyer can review an order")
                if order.status != OrderStatus.COMPLETED.value:
                    raise InvalidTransitionError("order", order.status, "REVIEWED")

                reviews = ReviewRepository(session)
                if await reviews.get_by_order(order.id) is not None:
                    raise self._already_reviewed()

                review = ReviewModel(
                    order_id=order.id,
                    gig_id=order.gig_id,
                    reviewer_id=order.buyer_id,
                    reviewee_id=order.seller_id,
                    rating=request.rating,
                    comment=request.comment,
                )
                await reviews.add(review)

                gigs = GigRepository(session)
                gig = await gigs.get_by_id(order.gig_id, for_update=True)
                if gig is not None:
                    total = (gig.rating or 0.0) * gig.review_count + request.rating
                    gig.review_count += 1
                    gig.rating = round(total / gig.review_count, 2)
                    gig.updated_at = utcnow()
                    await gigs.add(gig)
        except IntegrityError:
            # Unique order_id on reviews lost a race with another request
            raise self._already_reviewed()

        logger.info(f"Order {order_id} reviewed ({request.rating}/5)")
        await self._notifier.deliver([
            PendingNotification(
                review.reviewee_id,
                "New Review",
                f"You received a {review.rating}-star review.",
                NotificationType.REVIEW,
                {"orderId": review.order_id, "reviewId": review.id},
            )
        ])
        return ReviewResponse.model_validate(review, from_attributes=True)

    @staticmethod
    def _already_reviewed() -> DuplicateError:
        return DuplicateError("Order has already been reviewed", operation="create", table="reviews")

    # =========================================================================
    # Read side
    # =========================================================================

    async def get(self, order_id: str, actor_id: str, is_admin: bool = False) -> OrderResponse:
        async with self._db.session() as session:
            order = await OrderRepository(session).get_by_id(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found", operation="get", table="orders")
        if not self._roles(order, actor_id, is_admin):
            raise ForbiddenActionError("You are not a party to this order")
        return self._to_response(order)

    async def list_for_user(
        self,
        user_id: str,
        role: ActorRole = ActorRole.BUYER,
        page: int = 1,
        limit: int = 20,
    ) -> OrderListResponse:
        """Orders the user bought (or sold), newest first."""
        if role not in (ActorRole.BUYER, ActorRole.SELLER):
            raise ValidationError("role must be buyer or seller", details={"role": role.value})
        async with self._db.session() as session:
            orders, total = await OrderRepository(session).list_for_user(
                user_id, role=role, skip=(page - 1) * limit, limit=limit
            )
        return OrderListResponse(
            orders=[self._to_response(order) for order in orders],
            total=total,
            page=page,
            limit=limit,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    async def _load_locked(session: AsyncSession, order_id: str) -> OrderModel:
        order = await OrderRepository(session).get_by_id(order_id, for_update=True)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found", operation="update", table="orders")
        return order

    @staticmethod
    def _roles(order: OrderModel, actor_id: str, is_admin: bool) -> frozenset[ActorRole]:
        roles = set()
        if order.buyer_id == actor_id:
            roles.add(ActorRole.BUYER)
        if order.seller_id == actor_id:
            roles.add(ActorRole.SELLER)
        if is_admin:
            roles.add(ActorRole.ADMIN)
        return frozenset(roles)

    @staticmethod
    def _counterparties(order: OrderModel, actor_id: str) -> List[str]:
        if actor_id == order.buyer_id:
            return [order.seller_id]
        if actor_id == order.seller_id:
            return [order.buyer_id]
        return [order.buyer_id, order.seller_id]

    @staticmethod
    def _to_response(order: OrderModel) -> OrderResponse:
        return OrderResponse.model_validate(order, from_attributes=True)
