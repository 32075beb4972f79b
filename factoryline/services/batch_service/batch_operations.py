import logging
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ...extensions import db
from ...models import (
    BatchStatus,
    BottleStockTransaction,
    BottleType,
    FinishedGoods,
    Product,
    ProductionBatch,
    RawMaterial,
    StockLotUsage,
    StockTransaction,
)
from ...utils.quantities import as_float, to_decimal
from ...utils.timezone_utils import TimezoneUtils
from ..costing_engine import compute_batch_cost, weighted_unit_cost_for_batch_material
from ..exceptions import (
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    PermissionDenied,
    ProductionError,
    ValidationError,
)
from ..finished_goods_service import FinishedGoodsService
from ..material_ledger import consume_fifo
from ..stock_check import MaterialAvailabilityService
from .core import BatchService
from .dto import CompletionData, parse_completion, parse_id, parse_planned_date, parse_planned_items

logger = logging.getLogger(__name__)


def _actor_id(actor) -> Optional[int]:
    return getattr(actor, 'id', None) if actor is not None else None


class BatchOperationsService:
    """Batch lifecycle: create, start, complete, cancel and delete"""

    ACTIONS = ('start', 'complete', 'cancel')

    @classmethod
    def create_batch(
        cls,
        batch_code,
        product_id,
        planned_items,
        planned_date=None,
        notes: Optional[str] = None,
        actor=None,
    ) -> Dict[str, Any]:
        """
        Plan a new batch.

        A material shortage does not block planning: the batch is created and
        the shortage snapshot is stored and returned as a warning.
        """
        code = (batch_code or '').strip() if isinstance(batch_code, str) else batch_code
        if not code:
            raise ValidationError('Batch code is required', field='batch_code')
        code = str(code)

        product = db.session.get(Product, parse_id(product_id, 'product_id'))
        if not product:
            raise NotFoundError('Product', product_id)

        items = parse_planned_items(planned_items)
        planned_on = parse_planned_date(planned_date) or TimezoneUtils.today()

        if ProductionBatch.query.filter_by(batch_code=code).first():
            raise ConflictError(f'Batch code {code} already exists', details={'batch_code': code})

        volume_liters = MaterialAvailabilityService.volume_for_items([item.to_dict() for item in items])
        availability = MaterialAvailabilityService.check(product.id, volume_liters)

        now = TimezoneUtils.utc_now()
        batch = ProductionBatch(
            batch_code=code,
            product_id=product.id,
            status=BatchStatus.PLANNED,
            planned_date=planned_on,
            planned_items=[item.to_dict() for item in items],
            planned_notes=notes,
            planned_volume_liters=volume_liters,
            insufficient_materials=[line.to_dict() for line in availability.insufficient_lines] or None,
            planned_by=_actor_id(actor),
            planned_at=now,
        )
        try:
            db.session.add(batch)
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError(f'Batch code {code} already exists', details={'batch_code': code})

        if availability.is_sufficient:
            logger.info("Planned batch %s for %s L of product %s", code, volume_liters, product.id)
        else:
            logger.warning(
                "Planned batch %s with insufficient materials: %s",
                code, [line.material_name for line in availability.insufficient_lines],
            )

        return {
            'batch': batch.to_dict(),
            'total_volume_liters': as_float(volume_liters),
            'has_warning': not availability.is_sufficient,
            'insufficient_materials': [line.to_dict() for line in availability.insufficient_lines],
        }

    @classmethod
    def transition(cls, batch_id, action, payload: Optional[Mapping[str, Any]] = None, actor=None) -> ProductionBatch:
        if action not in cls.ACTIONS:
            raise ValidationError(f'Unknown action: {action}', field='action')

        payload = payload or {}
        handler = {
            'start': lambda: cls.start_batch(batch_id, actor=actor),
            'complete': lambda: cls.complete_batch(batch_id, payload, actor=actor),
            'cancel': lambda: cls.cancel_batch(batch_id, reason=payload.get('reason') or payload.get('cancelled_reason'), actor=actor),
        }[action]

        try:
            return handler()
        except ProductionError:
            raise
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception(
                "Storage failure during batch transition batch_id=%s action=%s payload=%s",
                batch_id, action, dict(payload),
            )
            raise

    @classmethod
    def _claim(cls, batch: ProductionBatch, expected_status: str, values: Dict[str, Any]) -> None:
        """Compare-and-swap the status; exactly one caller wins."""
        result = db.session.execute(
            sa.update(ProductionBatch)
            .where(ProductionBatch.id == batch.id, ProductionBatch.status == expected_status)
            .values(**values)
        )
        if result.rowcount != 1:
            db.session.rollback()
            current = db.session.get(ProductionBatch, batch.id)
            raise ConflictError(
                f'Batch {batch.batch_code} is no longer {expected_status}',
                current_status=current.status if current else None,
            )

    @classmethod
    def start_batch(cls, batch_id, actor=None) -> ProductionBatch:
        batch = BatchService.get_batch(batch_id)
        if batch.status != BatchStatus.PLANNED:
            raise ConflictError(
                f'Cannot start batch {batch.batch_code} from status {batch.status}',
                current_status=batch.status,
            )

        availability = MaterialAvailabilityService.check_items(batch.product_id, batch.planned_items or [])
        if not availability.is_sufficient:
            summary = ', '.join(
                f'{line.material_name} (short {as_float(line.shortage)} {line.unit})'
                for line in availability.insufficient_lines
            )
            raise InsufficientStockError(
                f'Insufficient materials to start batch {batch.batch_code}: {summary}',
                [line.to_dict() for line in availability.insufficient_lines],
            )

        try:
            cls._claim(batch, BatchStatus.PLANNED, {
                'status': BatchStatus.IN_PROGRESS,
                'started_by': _actor_id(actor),
                'started_at': TimezoneUtils.utc_now(),
            })
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info("Started batch %s", batch.batch_code)
        return batch

    @classmethod
    def cancel_batch(cls, batch_id, reason: Optional[str] = None, actor=None) -> ProductionBatch:
        batch = BatchService.get_batch(batch_id)
        if batch.status not in (BatchStatus.PLANNED, BatchStatus.IN_PROGRESS):
            raise ConflictError(
                f'Cannot cancel batch {batch.batch_code} from status {batch.status}',
                current_status=batch.status,
            )

        try:
            cls._claim(batch, batch.status, {
                'status': BatchStatus.CANCELLED,
                'cancelled_by': _actor_id(actor),
                'cancelled_at': TimezoneUtils.utc_now(),
                'cancelled_reason': reason,
            })
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info("Cancelled batch %s: %s", batch.batch_code, reason or 'no reason given')
        return batch

    @classmethod
    def _validate_references(cls, completion: CompletionData) -> None:
        for bottle_id in completion.bottle_totals():
            if not db.session.get(BottleType, bottle_id):
                raise NotFoundError('BottleType', bottle_id)
        for material_id in completion.material_totals():
            if not db.session.get(RawMaterial, material_id):
                raise NotFoundError('RawMaterial', material_id)

    @classmethod
    def complete_batch(cls, batch_id, payload: Optional[Mapping[str, Any]] = None, actor=None) -> ProductionBatch:
        """
        Complete an in-progress batch in one transaction.

        Claims the batch, deducts bottles and materials, consumes FIFO lots,
        rolls up costs and registers finished goods. Any failure rolls the
        whole unit back.
        """
        batch = BatchService.get_batch(batch_id)
        if batch.status != BatchStatus.IN_PROGRESS:
            raise ConflictError(
                f'Cannot complete batch {batch.batch_code} from status {batch.status}',
                current_status=batch.status,
            )

        completion = parse_completion(payload)
        cls._validate_references(completion)

        try:
            now = TimezoneUtils.utc_now()
            cls._claim(batch, BatchStatus.IN_PROGRESS, {
                'status': BatchStatus.COMPLETED,
                'completed_by': _actor_id(actor),
                'completed_at': now,
            })

            cls._deduct_bottles(batch, completion, actor)
            cls._deduct_materials(batch, completion, actor)

            items = [item.to_dict() for item in completion.actual_items]
            cost = compute_batch_cost(batch.id, items, expected_materials=completion.material_totals())

            batch.actual_items = items
            batch.actual_materials = [material.to_dict() for material in completion.actual_materials]
            batch.brix_before = completion.brix_before
            batch.brix_after = completion.brix_after
            batch.acidity_before = completion.acidity_before
            batch.acidity_after = completion.acidity_after
            batch.execution_notes = completion.notes
            batch.material_cost = cost.material_cost
            batch.bottle_cost = cost.bottle_cost
            batch.total_cost = cost.total_cost
            batch.total_volume_ml = cost.total_volume_ml
            batch.unit_cost_per_ml = cost.unit_cost_per_ml
            batch.cost_breakdown = cost.breakdown()

            FinishedGoodsService.register(batch, items, cost, manufactured_date=TimezoneUtils.today())
            db.session.commit()
        except Exception:
            db.session.rollback()
            logger.error("Completion of batch %s rolled back", batch_id)
            raise

        logger.info(
            "Completed batch %s: total_cost=%s volume_ml=%s",
            batch.batch_code, batch.total_cost, batch.total_volume_ml,
        )
        return batch

    @classmethod
    def _deduct_bottles(cls, batch: ProductionBatch, completion: CompletionData, actor) -> None:
        for bottle_id, quantity in completion.bottle_totals().items():
            if quantity <= 0:
                continue
            bottle = BottleType.query.filter_by(id=bottle_id).with_for_update().one()
            result = db.session.execute(
                sa.update(BottleType)
                .where(BottleType.id == bottle_id, BottleType.stock >= quantity)
                .values(stock=BottleType.stock - quantity)
            )
            if result.rowcount != 1:
                available = bottle.stock or 0
                shortage = {
                    'bottle_type_id': bottle.id,
                    'size': bottle.size,
                    'needed': quantity,
                    'available': available,
                    'shortage': quantity - available,
                }
                raise InsufficientStockError(
                    f'Not enough {bottle.size} bottles: needed {quantity}, '
                    f'available {available}, shortage {quantity - available}',
                    [shortage],
                )
            db.session.add(BottleStockTransaction(
                bottle_type_id=bottle.id,
                transaction_type='production',
                quantity=quantity,
                notes=f'Production batch: {batch.batch_code}',
                production_batch_id=batch.id,
                created_by=_actor_id(actor),
            ))

    @classmethod
    def _deduct_materials(cls, batch: ProductionBatch, completion: CompletionData, actor) -> None:
        for material_id, quantity in completion.material_totals().items():
            material = RawMaterial.query.filter_by(id=material_id).with_for_update().one()
            result = db.session.execute(
                sa.update(RawMaterial)
                .where(RawMaterial.id == material_id, RawMaterial.current_stock >= quantity)
                .values(current_stock=RawMaterial.current_stock - quantity)
            )
            if result.rowcount != 1:
                available = to_decimal(material.current_stock)
                raise InsufficientStockError(
                    f'Not enough {material.name}: needed {quantity} {material.unit}, '
                    f'available {available}, shortage {quantity - available}',
                    [{
                        'material_id': material.id,
                        'material_name': material.name,
                        'unit': material.unit,
                        'needed': float(quantity),
                        'available': float(available),
                        'shortage': float(quantity - available),
                    }],
                )

            transaction = StockTransaction(
                raw_material_id=material.id,
                transaction_type=StockTransaction.TYPE_PRODUCTION,
                quantity=quantity,
                notes=f'Production batch: {batch.batch_code}',
                production_batch_id=batch.id,
                created_by=_actor_id(actor),
            )
            db.session.add(transaction)
            db.session.flush()

            consume_fifo(material.id, quantity, batch.id, stock_transaction_id=transaction.id)
            unit_price = weighted_unit_cost_for_batch_material(batch.id, material.id)
            transaction.unit_price = unit_price
            transaction.total_price = unit_price * Decimal(quantity)

    @classmethod
    def delete_batch(cls, batch_id, actor=None) -> None:
        """
        Hard-delete a batch with its consumption records and finished goods.

        Stock already deducted is not restored; the movement logs keep their
        rows with the batch link cleared.
        """
        if actor is None or not getattr(actor, 'is_admin', False):
            raise PermissionDenied('Only administrators can delete production batches')

        batch = BatchService.get_batch(batch_id)
        code, status = batch.batch_code, batch.status
        try:
            StockLotUsage.query.filter_by(production_batch_id=batch.id).delete(synchronize_session=False)
            FinishedGoods.query.filter_by(production_batch_id=batch.id).delete(synchronize_session=False)
            StockTransaction.query.filter_by(production_batch_id=batch.id).update(
                {'production_batch_id': None}, synchronize_session=False
            )
            BottleStockTransaction.query.filter_by(production_batch_id=batch.id).update(
                {'production_batch_id': None}, synchronize_session=False
            )
            db.session.delete(batch)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.warning(
            "Production batch %s (%s, id=%s) deleted by user %s",
            code, status, batch_id, _actor_id(actor),
        )
