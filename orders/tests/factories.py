from datetime import timedelta
from decimal import Decimal

import factory
from django.utils import timezone
from factory.django import DjangoModelFactory
from orders.models import CheckoutSession, Invoice, Order


class OrderFactory(DjangoModelFactory):
    class Meta:
        model = Order

    owner_key = factory.Sequence(lambda n: f"acct:{1000 + n}")
    number = factory.Sequence(lambda n: f"ORD-TEST-{n:06d}")
    payment_reference = factory.Sequence(lambda n: f"PAY_test{n:06d}")
    subtotal = Decimal("1000.00")
    shipping_fee = Decimal("1200.00")
    total = Decimal("2200.00")
    total_weight = Decimal("1.000")
    shipping_address = factory.LazyFunction(lambda: {"city": "Lagos"})


class CheckoutSessionFactory(DjangoModelFactory):
    class Meta:
        model = CheckoutSession

    order = factory.SubFactory(OrderFactory)
    owner_key = factory.LazyAttribute(lambda o: o.order.owner_key if o.order else "acct:999")
    reference = factory.Sequence(lambda n: f"CHK_test{n:06d}")
    status = CheckoutSession.STATUS_COMPLETED
    total = Decimal("2200.00")
    expires_at = factory.LazyFunction(lambda: timezone.now() + timedelta(hours=24))


class InvoiceFactory(DjangoModelFactory):
    class Meta:
        model = Invoice

    order = factory.SubFactory(OrderFactory)
    number = factory.LazyAttribute(lambda o: o.order.number)
    total = factory.LazyAttribute(lambda o: o.order.total)
    payment_reference = factory.LazyAttribute(lambda o: o.order.payment_reference)
    issued_at = factory.LazyFunction(timezone.now)
    due_at = factory.LazyFunction(lambda: timezone.now() + timedelta(days=7))
