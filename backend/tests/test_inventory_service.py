import os
import tempfile
import unittest

from catalog.persistence import Store
from catalog.schema import init_schema
from catalog.services import inventory_service, product_service
from catalog.validation import NotFoundError, ValidationError


class InventoryServiceTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.tmpdir.name, "catalog.db")
        self.store = Store(self.db_path).open()
        init_schema(self.store, seed=False)

        product_id = product_service.create_product(
            self.store,
            payload={
                "title": "Spiral Binder",
                "description": "A4 binder",
                "variants": [{"sku": "SB-1", "stock_qty": 10}],
            },
            image_path="/uploads/binder.png",
        )
        self.variant_id = product_service.get_product(self.store, product_id).variants[0].id

    def tearDown(self):
        self.store.close()
        self.tmpdir.cleanup()

    def _stock(self):
        return self.store.prepare("SELECT stock_qty FROM variants WHERE id = ?").get(self.variant_id)["stock_qty"]

    def _ledger(self):
        return self.store.prepare(
            "SELECT delta_qty, reason FROM inventory_adjustments WHERE variant_id = ? ORDER BY id"
        ).all(self.variant_id)

    def test_increment(self):
        new_qty = inventory_service.adjust_stock(self.store, variant_id=self.variant_id, delta=5, reason="restock")
        self.assertEqual(new_qty, 15)
        self.assertEqual(self._stock(), 15)
        self.assertEqual(self._ledger(), [{"delta_qty": 5, "reason": "restock"}])

    def test_decrement_clamps_at_zero_and_records_requested_delta(self):
        new_qty = inventory_service.adjust_stock(self.store, variant_id=self.variant_id, delta=-15, reason="damage")
        self.assertEqual(new_qty, 0)
        self.assertEqual(self._stock(), 0)
        self.assertEqual(self._ledger(), [{"delta_qty": -15, "reason": "damage"}])

    def test_numeric_string_delta(self):
        self.assertEqual(inventory_service.adjust_stock(self.store, variant_id=self.variant_id, delta="-3"), 7)

    def test_zero_delta_rejected_without_writes(self):
        with self.assertRaises(ValidationError):
            inventory_service.adjust_stock(self.store, variant_id=self.variant_id, delta=0)
        self.assertEqual(self._stock(), 10)
        self.assertEqual(self._ledger(), [])

    def test_non_integer_delta_rejected(self):
        for bad in ("abc", "1.5", 2.5, None, True, ""):
            with self.subTest(delta=bad):
                with self.assertRaises(ValidationError):
                    inventory_service.adjust_stock(self.store, variant_id=self.variant_id, delta=bad)
        self.assertEqual(self._ledger(), [])

    def test_missing_variant(self):
        with self.assertRaises(NotFoundError):
            inventory_service.adjust_stock(self.store, variant_id=9999, delta=1)
        count = self.store.prepare("SELECT COUNT(*) AS n FROM inventory_adjustments").get()["n"]
        self.assertEqual(count, 0)

    def test_adjustment_is_persisted_with_stock(self):
        inventory_service.adjust_stock(self.store, variant_id=self.variant_id, delta=2)
        self.store.close()
        with Store(self.db_path) as reopened:
            row = reopened.prepare("SELECT stock_qty FROM variants WHERE id = ?").get(self.variant_id)
            self.assertEqual(row["stock_qty"], 12)
            count = reopened.prepare("SELECT COUNT(*) AS n FROM inventory_adjustments").get()["n"]
            self.assertEqual(count, 1)

    def test_list_adjustments_joins_variant_and_product(self):
        inventory_service.adjust_stock(self.store, variant_id=self.variant_id, delta=1)
        inventory_service.adjust_stock(self.store, variant_id=self.variant_id, delta=-1)
        rows = inventory_service.list_adjustments(self.store, limit=1)
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].delta_qty, -1)
        self.assertEqual(rows[0].sku, "SB-1")
        self.assertEqual(rows[0].product_title, "Spiral Binder")

    def test_adjust_stock_is_audited(self):
        inventory_service.adjust_stock(self.store, variant_id=self.variant_id, delta=4)
        row = self.store.prepare("SELECT action, entity FROM audit_log WHERE action = 'adjust_stock'").get()
        self.assertEqual(row, {"action": "adjust_stock", "entity": "variant"})

    def test_audit_failure_keeps_adjustment(self):
        self.store.execute("DROP TABLE audit_log")
        new_qty = inventory_service.adjust_stock(self.store, variant_id=self.variant_id, delta=-4, reason="sold")
        self.assertEqual(new_qty, 6)
        self.store.close()
        with Store(self.db_path) as reopened:
            row = reopened.prepare("SELECT stock_qty FROM variants WHERE id = ?").get(self.variant_id)
            self.assertEqual(row["stock_qty"], 6)
            ledger = reopened.prepare("SELECT delta_qty FROM inventory_adjustments").all()
            self.assertEqual(ledger, [{"delta_qty": -4}])


if __name__ == "__main__":
    unittest.main()
