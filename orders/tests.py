from unittest.mock import patch

from django.contrib.admin.sites import AdminSite
from django.contrib.auth import get_user_model
from django.core import mail
from django.test import RequestFactory, TestCase, override_settings
from django.urls import reverse

from catalog.models import Product, SizeStock

from .admin import OrderAdmin
from .emails import send_order_confirmation_email
from .models import Order
from . import notifications
from .notifications import notify_order_placed


def _order(user, **fields):
    defaults = {"city": "Pune", "state": "MH", "pincode": "411001", "items": [], "total": 1000}
    defaults.update(fields)
    return Order.objects.create(user=user, **defaults)


class OrderModelTests(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user("carol", "carol@example.com", "pw")

    def test_to_dict_upi(self):
        order = _order(self.user, upi_txn_id="UTR1", upi_payer_name="Carol", payment_method="UPI")
        data = order.to_dict()
        self.assertEqual(data["upi"], {"txnId": "UTR1", "payerName": "Carol"})
        self.assertEqual(data["userId"], self.user.pk)
        self.assertEqual(data["status"], "pending")
        self.assertIsNone(data["razorpayOrderId"])

    def test_no_upi_record(self):
        self.assertIsNone(_order(self.user).upi)


class MyOrdersViewTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.user = User.objects.create_user("carol", "carol@example.com", "pw")
        self.other = User.objects.create_user("dave", "dave@example.com", "pw")

    def test_requires_login(self):
        self.assertEqual(self.client.get(reverse("orders:my_orders")).status_code, 401)

    def test_lists_own_orders_paginated(self):
        for i in range(12):
            _order(self.user, total=i)
        _order(self.other)
        self.client.force_login(self.user)

        first = self.client.get(reverse("orders:my_orders")).json()
        self.assertEqual(len(first["data"]), 10)
        self.assertTrue(first["hasNext"])
        self.assertFalse(first["hasPrev"])
        self.assertEqual(first["data"][0]["total"], 11)

        second = self.client.get(reverse("orders:my_orders"), {"page": "2"}).json()
        self.assertEqual(len(second["data"]), 2)
        self.assertFalse(second["hasNext"])
        self.assertTrue(all(o["userId"] == self.user.pk for o in second["data"]))

        bad = self.client.get(reverse("orders:my_orders"), {"page": "x"}).json()
        self.assertEqual(bad["page"], 1)


@override_settings(ORDERS_ADMIN_EMAILS="ops@example.com, OPS@example.com")
class ConfirmationEmailTests(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user("carol", "carol@example.com", "pw", first_name="Carol")

    def test_paid_order_email(self):
        order = _order(self.user, status="paid", total=49900, items=[{"productId": "P1", "title": "Kurta", "qty": 1}])
        self.assertTrue(send_order_confirmation_email(order, self.user))
        self.assertEqual(len(mail.outbox), 2)
        customer = mail.outbox[0]
        self.assertEqual(customer.to, ["carol@example.com"])
        self.assertIn(f"Order #{order.pk} confirmed", customer.subject)
        self.assertIn("INR 499.00", customer.subject)
        self.assertIn("Kurta", customer.body)
        self.assertEqual(mail.outbox[1].to, ["ops@example.com"])

    def test_pending_order_subject(self):
        order = _order(self.user, upi_txn_id="UTR9")
        send_order_confirmation_email(order, self.user)
        self.assertIn("payment pending verification", mail.outbox[0].subject)
        self.assertIn("UTR9", mail.outbox[0].body)

    def test_user_without_email(self):
        user = get_user_model().objects.create_user("noemail", "", "pw")
        self.assertFalse(send_order_confirmation_email(_order(user), user))
        self.assertEqual(len(mail.outbox), 0)

    def test_dispatch_runs_after_commit(self):
        order = _order(self.user)
        with self.captureOnCommitCallbacks() as callbacks:
            notify_order_placed(order, self.user)
        self.assertEqual(len(mail.outbox), 0)
        self.assertEqual(len(callbacks), 1)
        callbacks[0]()
        self.assertEqual(len(mail.outbox), 2)

    @override_settings(ORDER_EMAIL_ASYNC=True)
    def test_async_dispatch_uses_thread(self):
        order = _order(self.user)
        with patch("orders.notifications.threading.Thread") as thread:
            with self.captureOnCommitCallbacks(execute=True):
                notify_order_placed(order, self.user)
        thread.assert_called_once()
        self.assertIs(thread.call_args.kwargs["target"], notifications._deliver_in_thread)
        self.assertEqual(thread.call_args.kwargs["args"], (order, self.user))
        self.assertTrue(thread.call_args.kwargs["daemon"])
        thread.return_value.start.assert_called_once()

    def test_thread_closes_its_connections(self):
        order = _order(self.user)
        with patch("orders.notifications.connections") as conns:
            notifications._deliver_in_thread(order, self.user)
        conns.close_all.assert_called_once_with()
        self.assertEqual(len(mail.outbox), 2)

    def test_thread_closes_connections_after_failure(self):
        order = _order(self.user)
        with patch("orders.notifications.connections") as conns, \
                patch("orders.emails.send_order_confirmation_email", side_effect=RuntimeError("smtp down")):
            with self.assertLogs("orders.notifications", level="ERROR"):
                notifications._deliver_in_thread(order, self.user)
        conns.close_all.assert_called_once_with()


class OrderAdminActionTests(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user("carol", "carol@example.com", "pw")
        self.admin = OrderAdmin(Order, AdminSite())
        self.request = RequestFactory().post("/admin/orders/order/")
        Product.objects.create(id="P1", title="Kurta", stock=1)
        tee = Product.objects.create(id="P2", title="Tee", track_inventory_by_size=True)
        SizeStock.objects.create(product=tee, code="M", qty=0)

    def test_mark_paid_only_pending(self):
        pending = _order(self.user)
        shipped = _order(self.user, status="shipped")
        with patch.object(self.admin, "message_user"):
            self.admin.mark_paid(self.request, Order.objects.all())
        pending.refresh_from_db()
        shipped.refresh_from_db()
        self.assertEqual(pending.status, "paid")
        self.assertEqual(shipped.status, "shipped")

    def test_cancel_returns_stock(self):
        order = _order(self.user, items=[{"productId": "P1", "qty": 2}, {"productId": "P2", "size": "M", "qty": 1}])
        with patch.object(self.admin, "message_user"):
            self.admin.mark_cancelled(self.request, Order.objects.filter(pk=order.pk))
            self.admin.mark_cancelled(self.request, Order.objects.filter(pk=order.pk))
        order.refresh_from_db()
        self.assertEqual(order.status, "cancelled")
        self.assertEqual(Product.objects.get(pk="P1").stock, 3)
        self.assertEqual(SizeStock.objects.get(product_id="P2", code="M").qty, 1)
