import unittest

from store.models import Order
from store.orders import OrderSummary
from support import line
from utils.pure import cart_summary_markdown, fmt_money, generate_markdown_table, missing_fields


def _order(oid: int, total: float, status: str) -> Order:
    return Order(id=oid, total_amount=total, status=status, created_at=f"2025-01-0{oid}")


class OrderSummaryTestCase(unittest.TestCase):
    def test_totals_and_status_counts(self):
        summary = OrderSummary.from_orders(
            [_order(1, 10, "pending"), _order(2, 30, "paid"), _order(3, 20, "pending")]
        )
        self.assertEqual(summary.total_orders, 3)
        self.assertEqual(summary.total_sales, 60)
        self.assertEqual(summary.avg_order_value, 20)
        self.assertEqual(
            summary.status_counts, {"pending": 2, "paid": 1, "completed": 0, "cancelled": 0}
        )

    def test_no_orders(self):
        summary = OrderSummary.from_orders(None)
        self.assertEqual(summary.orders, [])
        self.assertEqual(summary.avg_order_value, 0)
        self.assertEqual(sum(summary.status_counts.values()), 0)


class MarkdownTestCase(unittest.TestCase):
    def test_table_uses_first_row_as_header(self):
        md = generate_markdown_table(None, [["a", "b"], [1, 2]], ["l", "r"])
        self.assertEqual(md, "| a | b |\n| :--- | ---: |\n| 1 | 2 |")

    def test_align_length_must_match(self):
        with self.assertRaises(ValueError):
            generate_markdown_table(["a", "b"], [[1, 2]], ["l"])

    def test_cart_summary_lists_lines_and_subtotal(self):
        md = cart_summary_markdown([line(1, pid=1, quantity=3, price=10)])
        self.assertIn("| Product 1 | ₦10.00 | 3 | ₦30.00 |", md)
        self.assertTrue(md.endswith(f"**Subtotal:** {fmt_money(30)}"))

    def test_address_form_reports_blank_required_fields(self):
        fields = {
            "full_name": "Jane Doe",
            "phone_number": " ",
            "street_address": "1 Main St",
            "city": "",
            "country": "Nigeria",
            "is_default": False,
        }
        self.assertEqual(missing_fields(fields), ["phone_number", "city"])

        fields.update(phone_number="0800", city="Lagos")
        self.assertEqual(missing_fields(fields), [])


if __name__ == "__main__":
    unittest.main()
