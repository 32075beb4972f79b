"""
Material ledger - FIFO lots for raw materials

All raw-material receipts, damage write-offs and production consumption flow
through here so that the aggregate stock counter and the lot ledger move
together.
"""

from ._fifo_ops import calculate_deduction_plan, consume_fifo, ledger_total
from ._history import bottle_movements, material_movements
from ._receiving import receive_bottles, receive_material
from ._validation import drift_report, validate_ledger_sync
from ._write_off import write_off_bottles, write_off_material

__all__ = [
    'calculate_deduction_plan',
    'consume_fifo',
    'ledger_total',
    'bottle_movements',
    'material_movements',
    'receive_bottles',
    'receive_material',
    'drift_report',
    'validate_ledger_sync',
    'write_off_bottles',
    'write_off_material',
]
