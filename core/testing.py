from decimal import Decimal

from django.contrib.auth import get_user_model

from core.models import Client, CompanyProfile, FinishedGood, ProductionBatch


User = get_user_model()

MAHARASHTRA_GSTIN = "27AAPFU0939F1ZV"
KARNATAKA_GSTIN = "29AAGCB7383J1Z4"


def make_user(username: str = "sales", **extra) -> User:
    return User.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password="pass1234",
        **extra,
    )


def make_client(name: str = "Shree Pharma", gst_number: str | None = MAHARASHTRA_GSTIN, **extra) -> Client:
    return Client.objects.create(name=name, gst_number=gst_number, **extra)


def make_company(name: str = "Ayurved Labs Pvt Ltd", gstin: str = MAHARASHTRA_GSTIN, **extra) -> CompanyProfile:
    extra.setdefault("address", "Plot 12, MIDC, Pune")
    extra.setdefault("bank_name", "State Bank of India")
    extra.setdefault("bank_ifsc_code", "SBIN0000123")
    return CompanyProfile.objects.create(name=name, gstin=gstin, **extra)


def make_finished_good(
    product_name: str = "Ashwagandha Churna",
    available_quantity="10",
    price_per_unit="100.00",
    batch_code: str | None = None,
    **extra,
) -> FinishedGood:
    batch_code = batch_code or f"B-{ProductionBatch.objects.count() + 1:04d}"
    batch, _ = ProductionBatch.objects.get_or_create(batch_code=batch_code)
    extra.setdefault("hsn_code", "3004")
    extra.setdefault("unit", "kg")
    return FinishedGood.objects.create(
        batch=batch,
        product_name=product_name,
        available_quantity=Decimal(str(available_quantity)),
        price_per_unit=Decimal(str(price_per_unit)),
        quality_status=FinishedGood.QualityStatus.APPROVED,
        **extra,
    )
