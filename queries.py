from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional


SALES_TABLE = "sales"

SALE_COLUMNS = (
	"sale_id",
	"customer_name",
	"date_time",
	"product_description",
	"amount",
	"product_type",
	"payment_method",
)

# Categories counted separately by the statistics query.
CLOTHING = "Clothing"
OTHER = "Other"

EQUALS = "="
CONTAINS = "LIKE"
ON_DATE = "ON_DATE"


@dataclass(frozen=True)
class Statement:
	sql: str
	params: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Predicate:
	column: str
	operator: str
	param: str
	value: Any

	def render(self) -> str:
		placeholder = f"%({self.param})s"
		if self.operator == CONTAINS:
			return f"{self.column} LIKE {placeholder}"
		if self.operator == ON_DATE:
			return f"DATE({self.column}) = {placeholder}"
		return f"{self.column} = {placeholder}"

	def bound_value(self) -> Any:
		if self.operator == CONTAINS:
			return f"%{self.value}%"
		return self.value


def parse_timestamp(value: Any) -> dt.datetime:
	"""Parse an ISO-8601 date or datetime into a naive UTC datetime."""
	if isinstance(value, dt.datetime):
		parsed = value
	elif isinstance(value, dt.date):
		parsed = dt.datetime(value.year, value.month, value.day)
	elif isinstance(value, str) and value.strip():
		text = value.strip()
		if text.endswith(("Z", "z")):
			text = text[:-1] + "+00:00"
		try:
			parsed = dt.datetime.fromisoformat(text)
		except ValueError:
			raise ValueError(f"Invalid date value: {value!r}")
	else:
		raise ValueError(f"Invalid date value: {value!r}")
	if parsed.tzinfo is not None:
		parsed = parsed.astimezone(dt.timezone.utc).replace(tzinfo=None)
	return parsed


@dataclass(frozen=True)
class SalesFilter:
	customer_name: Optional[str] = None
	sale_date: Optional[dt.date] = None
	product_type: Optional[str] = None

	@classmethod
	def from_args(cls, args: Mapping[str, Any]) -> "SalesFilter":
		sale_date = args.get("saleDate")
		return cls(
			customer_name=args.get("customerName") or None,
			sale_date=parse_timestamp(sale_date).date() if sale_date else None,
			product_type=args.get("productType") or None,
		)

	def predicates(self) -> List[Predicate]:
		preds: List[Predicate] = []
		if self.customer_name:
			preds.append(Predicate("customer_name", CONTAINS, "customer_name", self.customer_name))
		if self.sale_date:
			preds.append(Predicate("date_time", ON_DATE, "sale_date", self.sale_date))
		# An empty product type is the same as no product type.
		if self.product_type:
			preds.append(Predicate("product_type", EQUALS, "product_type", self.product_type))
		return preds


def select_sales(filters: Optional[SalesFilter] = None) -> Statement:
	sql = f"SELECT {', '.join(SALE_COLUMNS)} FROM {SALES_TABLE}"
	preds = (filters or SalesFilter()).predicates()
	if preds:
		sql += " WHERE " + " AND ".join(p.render() for p in preds)
	return Statement(sql, {p.param: p.bound_value() for p in preds})


def insert_sale(record: Mapping[str, Any]) -> Statement:
	placeholders = ", ".join(f"%({c})s" for c in SALE_COLUMNS)
	sql = f"INSERT INTO {SALES_TABLE} ({', '.join(SALE_COLUMNS)}) VALUES ({placeholders})"
	return Statement(sql, {c: record.get(c) for c in SALE_COLUMNS})


def delete_sale(sale_id: str) -> Statement:
	return Statement(f"DELETE FROM {SALES_TABLE} WHERE sale_id = %(sale_id)s", {"sale_id": sale_id})


def sales_statistics(start: dt.datetime, end: dt.datetime) -> Statement:
	# COALESCE keeps an empty range at zero instead of NULL.
	sql = f"""
		SELECT
			COUNT(*) AS totalVendas,
			COALESCE(SUM(amount), 0) AS totalFaturamento,
			COALESCE(SUM(CASE WHEN product_type = %(clothing)s THEN 1 ELSE 0 END), 0) AS totalRoupas,
			COALESCE(SUM(CASE WHEN product_type = %(other)s THEN 1 ELSE 0 END), 0) AS totalOutros
		FROM {SALES_TABLE}
		WHERE date_time BETWEEN %(start_date)s AND %(end_date)s
	"""
	return Statement(
		sql,
		{"clothing": CLOTHING, "other": OTHER, "start_date": start, "end_date": end},
	)
