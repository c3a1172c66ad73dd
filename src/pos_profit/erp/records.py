"""Typed snapshots of the ERP records read during one fetch cycle.

``search_read`` returns flat dicts whose relational fields come back either
as a bare id, as an ``[id, display_name]`` pair, or as ``False`` when empty.
``RelatedRef.parse`` is the single place that shape is interpreted; the
reconciliation code only ever sees ``RelatedRef`` or ``None``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from pos_profit.exceptions import DataQualityError


@dataclass(frozen=True)
class RelatedRef:
    """Reference to a related ERP record, with its display name when known."""

    id: int
    label: Optional[str] = None

    @classmethod
    def parse(cls, value: Any) -> Optional[RelatedRef]:
        """Normalise a relational field value.

        Examples:
            >>> RelatedRef.parse([5, "Caja Surco"])
            RelatedRef(id=5, label='Caja Surco')
            >>> RelatedRef.parse(5)
            RelatedRef(id=5, label=None)
            >>> RelatedRef.parse(False) is None
            True

        """
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, int):
            return cls(value)
        if isinstance(value, (list, tuple)) and value:
            head = value[0]
            if isinstance(head, bool) or not isinstance(head, int):
                return None
            label = value[1] if len(value) > 1 and isinstance(value[1], str) else None
            return cls(head, label)
        return None

    def label_or(self, default: str) -> str:
        return self.label if self.label else default


def _as_float(value: Any) -> float:
    """Numeric ERP field to float; ``False``/``None``/garbage become 0.0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _require_id(rec: Mapping[str, Any], model: str) -> int:
    rid = rec.get("id")
    if isinstance(rid, bool) or not isinstance(rid, int):
        raise DataQualityError(f"{model} record without a valid id: {rec!r}")
    return rid


def _id_list(value: Any) -> tuple[int, ...]:
    if not value or isinstance(value, bool):
        return ()
    return tuple(v for v in value if isinstance(v, int) and not isinstance(v, bool))


@dataclass(frozen=True)
class RawOrder:
    """A ``pos.order`` row."""

    id: int
    date_order: str
    config: Optional[RelatedRef]
    line_ids: tuple[int, ...]
    user: Optional[RelatedRef]

    @classmethod
    def from_record(cls, rec: Mapping[str, Any]) -> RawOrder:
        rid = _require_id(rec, "pos.order")
        date_order = rec.get("date_order")
        if not date_order or not isinstance(date_order, str):
            raise DataQualityError(f"pos.order {rid} has no date_order")
        return cls(
            id=rid,
            date_order=date_order,
            config=RelatedRef.parse(rec.get("config_id")),
            line_ids=_id_list(rec.get("lines")),
            user=RelatedRef.parse(rec.get("user_id")),
        )


@dataclass(frozen=True)
class RawLine:
    """A ``pos.order.line`` row."""

    id: int
    product: RelatedRef
    qty: float
    price_subtotal: float
    price_subtotal_incl: float
    order_id: int

    @classmethod
    def from_record(cls, rec: Mapping[str, Any]) -> RawLine:
        rid = _require_id(rec, "pos.order.line")
        product = RelatedRef.parse(rec.get("product_id"))
        order = RelatedRef.parse(rec.get("order_id"))
        if product is None or order is None:
            raise DataQualityError(f"pos.order.line {rid} lacks product_id or order_id")
        return cls(
            id=rid,
            product=product,
            qty=_as_float(rec.get("qty")),
            price_subtotal=_as_float(rec.get("price_subtotal")),
            price_subtotal_incl=_as_float(rec.get("price_subtotal_incl")),
            order_id=order.id,
        )


@dataclass(frozen=True)
class RawProduct:
    """A ``product.product`` row."""

    id: int
    standard_price: float
    category: Optional[RelatedRef]
    template: Optional[RelatedRef]

    @classmethod
    def from_record(cls, rec: Mapping[str, Any]) -> RawProduct:
        return cls(
            id=_require_id(rec, "product.product"),
            standard_price=_as_float(rec.get("standard_price")),
            category=RelatedRef.parse(rec.get("categ_id")),
            template=RelatedRef.parse(rec.get("product_tmpl_id")),
        )


@dataclass(frozen=True)
class RawTemplate:
    """A ``product.template`` row, read only as a cost fallback."""

    id: int
    standard_price: float

    @classmethod
    def from_record(cls, rec: Mapping[str, Any]) -> RawTemplate:
        return cls(
            id=_require_id(rec, "product.template"),
            standard_price=_as_float(rec.get("standard_price")),
        )
