"""
factoryline test suite

Tests are organized by domain:
- test_stock_check.py: recipe availability against stock counters
- test_material_ledger.py: receipts, FIFO lots and ledger reconciliation
- test_costing_engine.py / test_finished_goods.py: batch cost rollup and output
- test_batch_lifecycle.py: create, start, complete, cancel and delete
- test_production_plan.py: historical and manual production-plan reports
- test_api_routes.py: JSON API, auth and the error envelope
"""
