from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from flask import Flask
from flask_mysqldb import MySQL

import queries
from queries import SalesFilter, Statement


logger = logging.getLogger(__name__)


class StoreUnavailable(RuntimeError):
	pass


class MySQLSalesStore:
	"""Sales persistence on top of a flask_mysqldb connection.

	The connection belongs to the current app context and is closed by
	flask_mysqldb at teardown, so every method must run inside one.
	"""

	def __init__(self, app: Optional[Flask] = None) -> None:
		self.mysql = MySQL()
		if app is not None:
			self.init_app(app)

	def init_app(self, app: Flask) -> None:
		app.config.setdefault("MYSQL_CURSORCLASS", "DictCursor")
		if app.config.get("MYSQL_SSL"):
			options = dict(app.config.get("MYSQL_CUSTOM_OPTIONS") or {})
			options.setdefault("ssl_mode", "REQUIRED")
			app.config["MYSQL_CUSTOM_OPTIONS"] = options
		self.mysql.init_app(app)

	def _fetchall(self, stmt: Statement) -> List[Dict[str, Any]]:
		cur = self.mysql.connection.cursor()
		try:
			cur.execute(stmt.sql, stmt.params)
			return list(cur.fetchall() or [])
		finally:
			cur.close()

	def _execute(self, stmt: Statement) -> int:
		conn = self.mysql.connection
		cur = conn.cursor()
		try:
			cur.execute(stmt.sql, stmt.params)
			conn.commit()
			return cur.rowcount
		finally:
			cur.close()

	def check_connection(self) -> None:
		try:
			self._fetchall(Statement("SELECT 1"))
		except Exception as exc:
			raise StoreUnavailable(f"Could not connect to MySQL: {exc}") from exc

	def list_sales(self, filters: SalesFilter) -> List[Dict[str, Any]]:
		return self._fetchall(queries.select_sales(filters))

	def create_sale(self, record: Mapping[str, Any]) -> None:
		self._execute(queries.insert_sale(record))

	def delete_sale(self, sale_id: str) -> int:
		return self._execute(queries.delete_sale(sale_id))

	def sales_statistics(self, start, end) -> Dict[str, Any]:
		rows = self._fetchall(queries.sales_statistics(start, end))
		return rows[0] if rows else {}
