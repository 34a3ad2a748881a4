# marketplace/domain/errors.py


class SettlementError(Exception):
    """Bazowy blad rozliczen. `kind` trafia do odpowiedzi API."""

    kind = "internal"

    def __init__(self, message: str, reference: str | None = None):
        super().__init__(message)
        self.message = message
        self.reference = reference

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class OrderNotFoundError(SettlementError):
    # bramka potwierdzila platnosc, ale nie ma zamowienia dla referencji
    kind = "not_found"


class PaymentNotSuccessfulError(SettlementError):
    kind = "not_yet_paid"

    def __init__(self, message: str, reference: str | None = None, status: str | None = None):
        super().__init__(message, reference)
        self.status = status

    def to_dict(self) -> dict:
        return {**super().to_dict(), "status": self.status}


class GatewayError(SettlementError):
    kind = "internal"


class GatewayUnavailableError(GatewayError):
    kind = "gateway_unavailable"


class TransactionNotFoundError(GatewayError):
    kind = "not_found"
