from unittest.mock import Mock, patch

from django.contrib.auth import get_user_model
from django.core import mail
from django.test import TestCase, override_settings

from accounts.models import Customer
from catalog.models import Product, SizeStock
from orders.models import Order
from payments import services
from payments.integrations.razorpay import RazorpayCredentials, RazorpayGateway, RemoteOrder, sign
from storefront.exceptions import (
    ConfigurationError, GatewayError, InsufficientStockError, ValidationError,
)

from .test_gateway import FakeResponse

SECRET = "topsecret"


def _gateway(key_id="rzp_test_key", key_secret=SECRET):
    return RazorpayGateway(resolver=lambda: RazorpayCredentials(key_id, key_secret))


def _shipping(**overrides):
    data = {"city": "Bengaluru", "state": "KA", "pincode": "560001"}
    data.update(overrides)
    return data


def _verify_payload(oid="order_1", pid="pay_1", **extra):
    payload = {"razorpayOrderId": oid, "razorpayPaymentId": pid, "razorpaySignature": sign(oid, pid, SECRET)}
    payload.update(extra)
    return payload


class CheckoutTestCase(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user("alice", "alice@example.com", "pw", first_name="Alice", last_name="Rao")
        self.customer = Customer.objects.create(
            user=self.user, customer_id="C0001", name="Alice Rao", email="alice@example.com",
            phone="9876543210", address1="12 MG Road", city="Bengaluru", state="KA", pincode="560001",
        )
        self.flat = Product.objects.create(id="P1", title="Kurta", price=49900, stock=5)
        self.sized = Product.objects.create(id="P2", title="Tee", price=29900, track_inventory_by_size=True)
        SizeStock.objects.create(product=self.sized, code="S", qty=4, position=0)
        SizeStock.objects.create(product=self.sized, code="M", qty=3, position=1)
        SizeStock.objects.create(product=self.sized, code="L", qty=2, position=2)

    def stock(self, product_id="P1"):
        return Product.objects.get(pk=product_id).stock

    def size_qty(self, code):
        return SizeStock.objects.get(product_id="P2", code=code).qty


class RequestGatewayOrderTests(CheckoutTestCase):
    def test_amount_echoed_without_conversion(self):
        gateway = _gateway()
        with patch.object(gateway, "create_remote_order", return_value=RemoteOrder("order_9", 123457, "INR")) as create:
            data = services.request_gateway_order(
                {"amount": 123457, "items": [{"productId": "P1", "title": "Kurta", "qty": 2}],
                 "appliedCoupon": {"code": "DIWALI10"}},
                gateway=gateway,
            )
        self.assertEqual(data, {"orderId": "order_9", "amount": 123457, "currency": "INR", "keyId": "rzp_test_key"})
        amount, currency, receipt, notes = create.call_args.args
        self.assertEqual(amount, 123457)
        self.assertEqual(currency, "INR")
        self.assertTrue(receipt.startswith("order_"))
        self.assertEqual(notes, {"items": "Kurta x2", "appliedCoupon": "DIWALI10"})
        self.assertEqual(create.call_args.kwargs["credentials"], RazorpayCredentials("rzp_test_key", SECRET))

    def test_key_id_matches_key_used_during_rotation(self):
        rotation = iter([RazorpayCredentials("rzp_old", "old_secret"), RazorpayCredentials("rzp_new", "new_secret")])
        resolver = Mock(side_effect=lambda: next(rotation))
        gateway = RazorpayGateway(resolver=resolver)
        with patch("payments.integrations.razorpay.requests.post",
                   return_value=FakeResponse(200, {"id": "order_R", "currency": "INR"})) as post:
            data = services.request_gateway_order({"amount": 100, "items": [{"qty": 1}]}, gateway=gateway)
        resolver.assert_called_once_with()
        self.assertEqual(post.call_args.kwargs["auth"].username, "rzp_old")
        self.assertEqual(data["keyId"], "rzp_old")

    def test_numeric_string_amount_accepted(self):
        gateway = _gateway()
        with patch.object(gateway, "create_remote_order", return_value=RemoteOrder("order_9", 500, "USD")):
            data = services.request_gateway_order({"amount": "500", "currency": "USD", "items": [{"qty": 1}]}, gateway=gateway)
        self.assertEqual(data["amount"], 500)
        self.assertEqual(data["currency"], "USD")

    def test_invalid_amounts_rejected_before_provider_call(self):
        gateway = _gateway()
        with patch.object(gateway, "create_remote_order") as create:
            for amount in (0, -5, "abc", None, "NaN", "Infinity", 10.5, True):
                with self.subTest(amount=amount):
                    with self.assertRaises(ValidationError) as cm:
                        services.request_gateway_order({"amount": amount, "items": [{"qty": 1}]}, gateway=gateway)
                    self.assertEqual(cm.exception.status_code, 400)
        create.assert_not_called()

    def test_empty_items_rejected(self):
        gateway = _gateway()
        with patch.object(gateway, "create_remote_order") as create:
            with self.assertRaises(ValidationError) as cm:
                services.request_gateway_order({"amount": 100, "items": []}, gateway=gateway)
        self.assertEqual(cm.exception.message, "No items in order")
        create.assert_not_called()

    def test_unconfigured_gateway(self):
        with self.assertRaises(ConfigurationError):
            services.request_gateway_order({"amount": 100, "items": [{"qty": 1}]}, gateway=_gateway(key_id=""))

    def test_gateway_failure_propagates_and_writes_nothing(self):
        gateway = _gateway()
        with patch.object(gateway, "create_remote_order", side_effect=GatewayError("boom")):
            with self.assertRaises(GatewayError):
                services.request_gateway_order({"amount": 100, "items": [{"productId": "P1", "qty": 1}]}, gateway=gateway)
        self.assertEqual(Order.objects.count(), 0)
        self.assertEqual(self.stock(), 5)


class ConfirmGatewayPaymentTests(CheckoutTestCase):
    def test_missing_identifiers(self):
        for key in ("razorpayOrderId", "razorpayPaymentId", "razorpaySignature"):
            payload = _verify_payload()
            payload[key] = "   "
            with self.subTest(key=key):
                with self.assertRaises(ValidationError) as cm:
                    services.confirm_gateway_payment(payload, self.user, gateway=_gateway())
                self.assertEqual(cm.exception.message, "Missing payment verification details")

    def test_missing_secret(self):
        with self.assertRaises(ConfigurationError):
            services.confirm_gateway_payment(_verify_payload(), self.user, gateway=_gateway(key_secret=""))

    def test_invalid_signature(self):
        payload = _verify_payload(items=[{"productId": "P1", "qty": 1}], **_shipping())
        payload["razorpaySignature"] = "0" * 64
        with self.assertRaises(ValidationError) as cm:
            services.confirm_gateway_payment(payload, self.user, gateway=_gateway())
        self.assertEqual(cm.exception.message, "Invalid payment signature")
        self.assertEqual(self.stock(), 5)
        self.assertEqual(Order.objects.count(), 0)

    def test_pure_verification_is_idempotent(self):
        for _ in range(2):
            result = services.confirm_gateway_payment(_verify_payload(), self.user, gateway=_gateway())
            self.assertEqual(result, {"razorpayPaymentId": "pay_1", "razorpayOrderId": "order_1"})
        self.assertEqual(Order.objects.count(), 0)
        self.assertEqual(self.stock(), 5)

    @override_settings(ORDERS_ADMIN_EMAILS="ops@example.com")
    def test_verified_payment_creates_paid_order(self):
        items = [{"productId": "P1", "title": "Kurta", "qty": 2}, {"productId": "P2", "title": "Tee", "qty": 1, "size": "M"}]
        payload = _verify_payload(items=items, total=129700, appliedCoupon={"code": "NEW"}, **_shipping())
        with self.captureOnCommitCallbacks(execute=True):
            result = services.confirm_gateway_payment(payload, self.user, gateway=_gateway())

        order = result["order"]
        self.assertEqual(order.status, "paid")
        self.assertEqual(order.payment_method, "Razorpay")
        self.assertEqual(order.total, 129700)
        self.assertEqual(order.items, items)
        self.assertEqual(order.razorpay_order_id, "order_1")
        self.assertEqual(order.razorpay_payment_id, "pay_1")
        self.assertEqual(order.applied_coupon, {"code": "NEW"})
        self.assertEqual(self.stock(), 3)
        self.assertEqual(self.size_qty("M"), 2)
        self.assertEqual(len(mail.outbox), 2)
        self.assertEqual(mail.outbox[0].to, ["alice@example.com"])
        self.assertEqual(mail.outbox[1].to, ["ops@example.com"])

    def test_shipping_defaults_from_profile(self):
        payload = _verify_payload(items=[{"productId": "P1", "qty": 1}], city="Mysuru", state="KA", pincode=570001)
        result = services.confirm_gateway_payment(payload, self.user, gateway=_gateway())
        order = result["order"]
        self.assertEqual(order.name, "Alice Rao")
        self.assertEqual(order.phone, "9876543210")
        self.assertEqual(order.address, "12 MG Road")
        self.assertEqual(order.city, "Mysuru")
        self.assertEqual(order.pincode, "570001")

    def test_shipping_required(self):
        payload = _verify_payload(items=[{"productId": "P1", "qty": 1}], city="Mysuru", state="KA")
        with self.assertRaises(ValidationError) as cm:
            services.confirm_gateway_payment(payload, self.user, gateway=_gateway())
        self.assertEqual(cm.exception.message, "City, state, and pincode are required")

    def test_malformed_pincode_rejected_before_mutation(self):
        for pincode in ("123", "123456789", "56 001", "ABCDE", "5600a1", "२१०००१", "٥٦٠٠٠١"):
            payload = _verify_payload(items=[{"productId": "P1", "qty": 1}], **_shipping(pincode=pincode))
            with self.subTest(pincode=pincode):
                with self.assertRaises(ValidationError) as cm:
                    services.confirm_gateway_payment(payload, self.user, gateway=_gateway())
                self.assertEqual(cm.exception.message, "Invalid pincode")
        self.assertEqual(self.stock(), 5)
        self.assertEqual(Order.objects.count(), 0)

    def test_insufficient_stock_rolls_back_earlier_items(self):
        items = [{"productId": "P2", "size": "S", "qty": 2}, {"productId": "P1", "title": "Kurta", "qty": 6}]
        with self.assertRaises(InsufficientStockError) as cm:
            services.confirm_gateway_payment(_verify_payload(items=items, **_shipping()), self.user, gateway=_gateway())
        self.assertEqual(cm.exception.status_code, 409)
        self.assertEqual(cm.exception.available, 5)
        self.assertEqual(cm.exception.product_id, "P1")
        self.assertEqual(self.size_qty("S"), 4)
        self.assertEqual(self.stock(), 5)
        self.assertEqual(Order.objects.count(), 0)

    def test_caller_label_and_non_list_items(self):
        result = services.confirm_gateway_payment(
            _verify_payload(items=[{"productId": "P1", "qty": 1}], paymentMethod="Razorpay UPI", **_shipping()),
            self.user, gateway=_gateway(),
        )
        self.assertEqual(result["order"].payment_method, "Razorpay UPI")
        with self.assertRaises(ValidationError):
            services.confirm_gateway_payment(_verify_payload(items={"productId": "P1"}), self.user, gateway=_gateway())

    def test_oversized_fields_rejected_before_mutation(self):
        items = [{"productId": "P1", "qty": 1}]
        cases = [
            (_verify_payload(items=items, paymentMethod="X" * 33, **_shipping()), "Payment method is too long"),
            (_verify_payload(items=items, currency="RUPEES-INR", **_shipping()), "Invalid currency"),
            (_verify_payload(oid="order_" + "9" * 64, items=items, **_shipping()), "Invalid payment identifiers"),
        ]
        for payload, message in cases:
            with self.subTest(message=message):
                with self.assertRaises(ValidationError) as cm:
                    services.confirm_gateway_payment(payload, self.user, gateway=_gateway())
                self.assertEqual(cm.exception.message, message)
                self.assertEqual(cm.exception.status_code, 400)
        self.assertEqual(self.stock(), 5)
        self.assertEqual(Order.objects.count(), 0)

    def test_payment_method_at_column_width_is_kept(self):
        payload = _verify_payload(items=[{"productId": "P1", "qty": 1}], paymentMethod="M" * 32, **_shipping())
        result = services.confirm_gateway_payment(payload, self.user, gateway=_gateway())
        result["order"].refresh_from_db()
        self.assertEqual(result["order"].payment_method, "M" * 32)


class SubmitManualPaymentTests(CheckoutTestCase):
    def test_end_to_end_flat_stock(self):
        payload = {"transactionId": "  UTR123456  ", "amount": 99800, "items": [{"productId": "P1", "qty": 2}], **_shipping()}
        order = services.submit_manual_payment(payload, self.user)

        self.assertEqual(self.stock(), 3)
        self.assertEqual(Order.objects.count(), 1)
        order.refresh_from_db()
        self.assertEqual(order.status, "pending")
        self.assertEqual(order.payment_method, "UPI")
        self.assertEqual(order.total, 99800)
        self.assertEqual(order.upi, {"txnId": "UTR123456", "payerName": "Alice Rao"})

    def test_flat_stock_boundary(self):
        payload = {"transactionId": "T1", "amount": 1, "items": [{"productId": "P1", "qty": 5}], **_shipping()}
        services.submit_manual_payment(payload, self.user)
        self.assertEqual(self.stock(), 0)

        Product.objects.filter(pk="P1").update(stock=5)
        payload["items"] = [{"productId": "P1", "qty": 6}]
        with self.assertRaises(InsufficientStockError):
            services.submit_manual_payment(payload, self.user)
        self.assertEqual(self.stock(), 5)
        self.assertEqual(Order.objects.count(), 1)

    def test_size_decrement_leaves_other_sizes_alone(self):
        payload = {"transactionId": "T1", "amount": 1, "items": [{"productId": "P2", "size": "M", "qty": 3}], **_shipping()}
        services.submit_manual_payment(payload, self.user)
        self.assertEqual(self.size_qty("M"), 0)
        self.assertEqual(self.size_qty("S"), 4)
        self.assertEqual(self.size_qty("L"), 2)

    def test_unknown_products_and_sizes_are_skipped(self):
        items = [{"productId": "NOPE", "qty": 50}, {"title": "Gift card", "qty": 1},
                 {"productId": "P2", "size": "XXL", "qty": 9}, {"productId": "P2", "qty": 9}]
        order = services.submit_manual_payment({"transactionId": "T1", "amount": 0, "items": items, **_shipping()}, self.user)
        self.assertEqual(order.items, items)
        self.assertEqual([self.size_qty(c) for c in ("S", "M", "L")], [4, 3, 2])

    def test_validation_errors(self):
        base = {"transactionId": "T1", "amount": 100, "items": [{"productId": "P1", "qty": 1}], **_shipping()}
        cases = [
            ({"transactionId": "   "}, "Transaction ID is required"),
            ({"transactionId": "T" * 129}, "Transaction ID is too long"),
            ({"paymentMethod": "X" * 33}, "Payment method is too long"),
            ({"currency": "X" * 9}, "Invalid currency"),
            ({"pincode": "२१०००१"}, "Invalid pincode"),
            ({"items": []}, "No items in order"),
            ({"pincode": "12"}, "Invalid pincode"),
            ({"state": ""}, "City, state, and pincode are required"),
            ({"amount": "ten"}, "Invalid amount"),
            ({"items": [{"productId": "P1", "qty": -1}]}, None),
        ]
        for change, message in cases:
            with self.subTest(change=change):
                with self.assertRaises(ValidationError) as cm:
                    services.submit_manual_payment({**base, **change}, self.user)
                if message:
                    self.assertEqual(cm.exception.message, message)
        self.assertEqual(self.stock(), 5)
        self.assertEqual(Order.objects.count(), 0)

    def test_long_account_name_clipped_to_column(self):
        user = get_user_model().objects.create_user("longname", "ln@example.com", "pw", first_name="A" * 150, last_name="B" * 150)
        payload = {"transactionId": "T1", "amount": 1, "items": [{"productId": "P1", "qty": 1}], **_shipping()}
        order = services.submit_manual_payment(payload, user)
        order.refresh_from_db()
        self.assertEqual(len(order.upi_payer_name), 150)
        self.assertEqual(len(order.name), 150)

    def test_notification_failure_does_not_affect_order(self):
        payload = {"transactionId": "T1", "amount": 100, "items": [{"productId": "P1", "qty": 1}], **_shipping()}
        with patch("orders.emails.send_order_confirmation_email", side_effect=RuntimeError("smtp down")):
            with self.assertLogs("orders.notifications", level="ERROR"):
                with self.captureOnCommitCallbacks(execute=True):
                    order = services.submit_manual_payment(payload, self.user)
        self.assertTrue(Order.objects.filter(pk=order.pk, status="pending").exists())
        self.assertEqual(self.stock(), 4)
