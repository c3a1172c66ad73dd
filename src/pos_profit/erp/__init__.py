"""ERP access: the ``search_read`` contract and typed raw records."""

from pos_profit.erp.client import OdooClient, SearchRead, make_session
from pos_profit.erp.records import RawLine, RawOrder, RawProduct, RawTemplate, RelatedRef

__all__ = [
    "OdooClient",
    "RawLine",
    "RawOrder",
    "RawProduct",
    "RawTemplate",
    "RelatedRef",
    "SearchRead",
    "make_session",
]
