"""Sandbox simulation request models."""

from decimal import Decimal

from pydantic import BaseModel, Field


class SimulatedCustomer(BaseModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None


class SimulatedProduct(BaseModel):
    name: str | None = None
    price: Decimal | None = Field(default=None, gt=0)


class SimulationRequest(BaseModel):
    """Optional overrides for the simulated payment.approved delivery."""

    customer: SimulatedCustomer = Field(default_factory=SimulatedCustomer)
    product: SimulatedProduct = Field(default_factory=SimulatedProduct)
    checkout_url: str | None = None
