import unittest
from unittest.mock import MagicMock, patch

from namebind import Container


class Contains:  # noqa: PLW1641
    def __init__(self, substring):
        self.substring = substring

    def __repr__(self):
        return f"Contains({self.substring!r})"

    def __eq__(self, other):
        return isinstance(other, str) and self.substring in other


class NullLogger:
    def info(self, msg: object, *args: object) -> None:
        pass


class StripeSdk:
    def pay(self, amount_usd: float, reference: str) -> bool:
        print(f"Stripe charged ${amount_usd} for {reference}")  # noqa: T201
        return True


class StripeAdapter:
    def __init__(self, sdk, logger, usd_per_cent=0.01) -> None:
        self._logger = logger
        self._sdk = sdk
        self._usd_per_cent = usd_per_cent

    def charge(self, order_id: str, amount_cents: int) -> None:
        self._logger.info("adapting to stripe sdk api")
        amount_usd = amount_cents * self._usd_per_cent
        ok = self._sdk.pay(amount_usd, reference=order_id)
        if not ok:
            msg = "Stripe payment failed"
            raise RuntimeError(msg)


class CheckoutService:
    def __init__(self, payments):
        self.payments = payments

    def checkout(self, order_id, amount_cents):
        self.payments.charge(order_id, amount_cents)


class TestWiringAdapterThirdPartySDK(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.cont = Container()
        self.cont.bind_factory(
            "payment_client",
            lambda sdk, logger: StripeAdapter(sdk, logger, usd_per_cent=0.0125),
            singleton=True,
        )
        self.cont.alias("payment_client", "payments")

        self.stripe_sdk = StripeSdk()
        self.stripe_sdk.pay = MagicMock(wraps=self.stripe_sdk.pay)
        self.cont.bind_instance("sdk", self.stripe_sdk)

        self.logger = NullLogger()
        self.logger.info = MagicMock(wraps=self.logger.info)
        self.cont.bind_instance("logger", self.logger)

    def test_adapter_calls_adaptee(self):
        service = self.cont.construct(CheckoutService)
        service.checkout("order-123", 5000)

        assert self.stripe_sdk.pay.call_count == 1
        assert self.stripe_sdk.pay.call_args[0][0] == 0.0125 * 5000
        assert self.stripe_sdk.pay.call_args[1]["reference"] == "order-123"

        assert self.logger.info.call_args[0][0] == Contains("stripe sdk")

    def test_adapter_is_shared_through_alias(self):
        assert self.cont.get("payments") is self.cont.get("payment_client")


class TestAutoWiringAdapterThirdPartySDK(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.cont = Container()
        self.cont.bind_constructor("payments", StripeAdapter)
        self.cont.bind_constructor("sdk", StripeSdk)
        self.cont.bind_constructor("logger", NullLogger)

    def test_adapter_calls_adaptee(self):
        service = self.cont.construct(CheckoutService)

        assert isinstance(service.payments, StripeAdapter)
        assert isinstance(service.payments._sdk, StripeSdk)
        assert isinstance(service.payments._logger, NullLogger)
        assert service.payments._usd_per_cent == 0.01

        with patch.object(StripeSdk, "pay", return_value=True) as pay:
            service.checkout("order-123", 5000)

        pay.assert_called_once_with(50.0, reference="order-123")

    def test_invoke_handler_with_explicit_and_wired_parameters(self):
        def handle(payments, order_id, amount_cents=100):
            payments.charge(order_id, amount_cents)
            return order_id

        assert self.cont.invoke(handle, {"order_id": "order-7"}) == "order-7"
