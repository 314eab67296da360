from .bases import ContractSignatureChecker

__all__ = [
    "ContractSignatureChecker",
]
