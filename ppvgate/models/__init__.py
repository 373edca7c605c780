from ppvgate.models.purchase import PurchaseRecord, PurchaseStatus

__all__ = ["PurchaseRecord", "PurchaseStatus"]
