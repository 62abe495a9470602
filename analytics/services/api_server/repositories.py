"""Data access between the ORM models and the segmentation core.

The core works on :class:`PurchaseRecord` values; the repositories translate
rows into records and write run results back onto segments.
"""

from collections.abc import Iterator
from decimal import Decimal

import structlog
from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.orm.exc import StaleDataError

from analytics.services.api_server.models import Purchase, PurchaseItem, Segment, User
from customer_segmentation.analyses import CategorySale
from customer_segmentation.foundation import PaymentStatus, PurchaseRecord
from customer_segmentation.segmentation import SegmentationResult

logger = structlog.get_logger(__name__)

DEFAULT_BATCH_SIZE = 1000


def _to_record(purchase: Purchase) -> PurchaseRecord:
    # Grouping uses the owning user, not the email captured at checkout
    return PurchaseRecord(
        customer_id=str(purchase.user_id),
        transaction_date=purchase.transaction_date,
        total_amount=Decimal(purchase.total_amount),
        payment_status=PaymentStatus(purchase.payment_status),
        categories=tuple(item.category for item in purchase.items),
    )


class PurchaseRepository:
    def __init__(self, session: Session, batch_size: int = DEFAULT_BATCH_SIZE):
        self.session = session
        self.batch_size = batch_size

    def iter_completed_purchases(self) -> Iterator[PurchaseRecord]:
        """Stream completed purchases of existing users as records.

        Rows are fetched in batches of ``batch_size``. The query runs on the
        first ``next()``, so an unused iterator costs nothing.
        """
        stmt = (
            select(Purchase)
            .join(User, Purchase.user_id == User.id)
            .where(Purchase.payment_status == PaymentStatus.COMPLETED.value)
            .options(selectinload(Purchase.items))
            .order_by(Purchase.id)
            .execution_options(yield_per=self.batch_size)
        )
        count = 0
        for purchase in self.session.scalars(stmt):
            count += 1
            yield _to_record(purchase)
        logger.debug("completed_purchases_streamed", count=count)

    def all_purchase_records(self) -> list[PurchaseRecord]:
        stmt = select(Purchase).options(selectinload(Purchase.items)).order_by(Purchase.id)
        return [_to_record(p) for p in self.session.scalars(stmt)]

    def category_sales(self) -> list[CategorySale]:
        rows = self.session.execute(select(PurchaseItem.category, PurchaseItem.total_price))
        return [CategorySale(category=c, total_price=Decimal(p)) for c, p in rows]

    def count_users(self) -> int:
        return self.session.scalar(select(func.count()).select_from(User)) or 0

    def history_for_user(self, user_id: int, limit: int, offset: int) -> tuple[list[Purchase], int]:
        total = self.session.scalar(
            select(func.count()).select_from(Purchase).where(Purchase.user_id == user_id)
        )
        stmt = (
            select(Purchase)
            .where(Purchase.user_id == user_id)
            .options(selectinload(Purchase.items))
            .order_by(Purchase.transaction_date.desc(), Purchase.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(self.session.scalars(stmt)), total or 0

    def get_by_reference(self, reference: str) -> Purchase | None:
        return self.session.scalar(
            select(Purchase).where(Purchase.paystack_reference == reference)
        )


class SegmentRepository:
    def __init__(self, session: Session):
        self.session = session

    def get(self, segment_id: int, include_inactive: bool = False) -> Segment | None:
        segment = self.session.get(Segment, segment_id)
        if segment is None or (not segment.is_active and not include_inactive):
            return None
        return segment

    def list_active(self) -> list[Segment]:
        stmt = select(Segment).where(Segment.is_active.is_(True)).order_by(Segment.id)
        return list(self.session.scalars(stmt))

    def get_by_name(self, name: str) -> Segment | None:
        return self.session.scalar(select(Segment).where(Segment.name == name))

    def save_run(self, segment: Segment, result: SegmentationResult) -> Segment:
        """Store a run's assignments, metrics and parameters on ``segment``.

        The update is one flush guarded by the segment version, so a
        concurrent run that committed first makes this one fail with
        StaleDataError rather than interleave writes.
        """
        segment_id = segment.id
        payload = result.as_dict()
        segment.assignments = payload["assignments"]
        segment.metrics = payload["metrics"]
        segment.algorithm = result.algorithm.value
        segment.parameters = payload["parameters"]
        segment.accuracy = result.accuracy
        segment.last_trained = result.completed_at
        try:
            self.session.commit()
        except StaleDataError:
            self.session.rollback()
            logger.warning("segment_run_conflict", segment_id=segment_id)
            raise

        logger.info(
            "segment_run_saved",
            segment_id=segment.id,
            algorithm=segment.algorithm,
            version=segment.version,
            assignments=len(segment.assignments),
        )
        return segment
