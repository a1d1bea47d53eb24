import unittest
from typing import Protocol
from unittest.mock import MagicMock

from depwire import Container


class Contains:  # noqa: PLW1641
    def __init__(self, substring):
        self.substring = substring

    def __repr__(self):
        return f"Contains({self.substring!r})"

    def __eq__(self, other):
        return isinstance(other, str) and self.substring in other


class PaymentClient(Protocol):
    def charge(self, order_id: str, amount_cents: int) -> None: ...


class InfoLogger(Protocol):
    def info(self, msg: object, *args: object) -> None: ...


class NullLogger:
    def info(self, msg: object, *args: object) -> None:
        pass


class StripeSdk:
    def pay(self, amount_usd: float, reference: str) -> bool:
        return True


class StripeAdapter:
    def __init__(self, sdk: StripeSdk, logger: InfoLogger, usd_per_cent: float = 0.01) -> None:
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


class TestWiringAdapterThirdPartySDK(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.cont = Container()
        self.cont.register(PaymentClient, StripeAdapter)
        self.stripe_sdk = StripeSdk()
        self.stripe_sdk.pay = MagicMock(wraps=self.stripe_sdk.pay)
        self.cont.register_instance(self.stripe_sdk, StripeSdk)
        self.logger = NullLogger()
        self.logger.info = MagicMock(wraps=self.logger.info)
        self.cont.register_instance(self.logger, InfoLogger)
        self.cont.register_instance(0.0125, "usd_per_cent")

    def test_adapter_calls_adaptee(self):
        client: PaymentClient = self.cont.make().get(PaymentClient)
        client.charge("order-123", 5000)

        assert self.stripe_sdk.pay.call_count == 1
        assert self.stripe_sdk.pay.call_args[0][0] == 0.0125 * 5000
        assert self.stripe_sdk.pay.call_args[1]["reference"] == "order-123"

        assert self.logger.info.call_args[0][0] == Contains("stripe sdk")


class TestAutoWiringAdapterThirdPartySDK(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.cont = Container()
        self.cont.register(PaymentClient, StripeAdapter)
        self.cont.register(InfoLogger, NullLogger)
        self.cont.register(StripeSdk)

    def test_adapter_uses_default_rate(self):
        provider = self.cont.make()
        provider.get(StripeSdk).pay = MagicMock(return_value=True)

        client: PaymentClient = provider.get(PaymentClient)
        client.charge("order-9", 200)

        assert provider.get(StripeSdk).pay.call_args[0][0] == 200 * 0.01

    def test_adapter_with_failing_sdk_raises(self):
        provider = self.cont.make()
        provider.get(StripeSdk).pay = MagicMock(return_value=False)

        with self.assertRaises(RuntimeError):
            provider.get(PaymentClient).charge("order-1", 1)
