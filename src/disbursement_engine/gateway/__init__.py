"""Transfer provider adapters."""

from disbursement_engine.gateway.base import TransferGateway, TransferReceipt
from disbursement_engine.gateway.paystack import PaystackGateway
from disbursement_engine.gateway.stub import StubTransferGateway

__all__ = [
    "TransferGateway",
    "TransferReceipt",
    "PaystackGateway",
    "StubTransferGateway",
]
