"""CRUD 操作模块"""
from . import ledger
from .user import apply_patch as apply_entitlement_patch
from .user import find_ids_by_customer_id
from .user import get as get_user_entitlement

__all__ = [
    "ledger",
    "apply_entitlement_patch",
    "find_ids_by_customer_id",
    "get_user_entitlement",
]
