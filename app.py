from __future__ import annotations

import atexit
import datetime as dt
import logging
import os
import sys
import uuid
from typing import Any, Dict, Mapping, Optional

import dicttoxml
from flasgger import Swagger
from flask import Flask, Response, jsonify, make_response, request
from flask_cors import CORS
from werkzeug.exceptions import BadRequest, HTTPException, NotFound

from config import Config
from keepalive import STOP_TIMEOUT_SECONDS, KeepAlive
from queries import SalesFilter, parse_timestamp
from store import MySQLSalesStore, StoreUnavailable


logger = logging.getLogger(__name__)


def _requested_format() -> str:
	return (request.args.get("format") or "json").strip().lower()


def _lenient_format() -> str:
	return "xml" if _requested_format() == "xml" else "json"


def _get_format() -> str:
	fmt = _requested_format()
	if fmt not in {"json", "xml"}:
		raise BadRequest("format must be 'json' or 'xml'")
	return fmt


def _to_xml(payload: Any, root: str = "response") -> bytes:
	# dicttoxml wraps lists; make output predictable
	return dicttoxml.dicttoxml(payload, custom_root=root, attr_type=False)


def _render(payload: Any, status: int, fmt: str, root: str) -> Response:
	if fmt == "xml":
		resp = make_response(_to_xml(payload, root=root), status)
		resp.headers["Content-Type"] = "application/xml; charset=utf-8"
		return resp
	return make_response(jsonify(payload), status)


def api_response(payload: Any, status: int = 200, *, root: str = "response") -> Response:
	return _render(payload, status, _get_format(), root)


def error_response(message: str, status: int) -> Response:
	# Never re-validate the format here, a bad ?format= is itself reported as an error.
	return _render({"message": message, "status": status}, status, _lenient_format(), "error")


def _handle_db_error(exc: Exception) -> Response:
	logger.error("%s %s failed: %s", request.method, request.path, exc)
	return error_response(str(exc), 500)


def _coerce_timestamp(value: Any) -> Any:
	try:
		return parse_timestamp(value)
	except ValueError:
		return value


def _sale_payload(row: Mapping[str, Any]) -> Dict[str, Any]:
	date_time = row.get("date_time")
	if isinstance(date_time, dt.datetime):
		# Stored as naive UTC.
		date_time = date_time.replace(tzinfo=None).isoformat() + "Z"
	elif isinstance(date_time, dt.date):
		date_time = date_time.isoformat()
	amount = row.get("amount")
	return {
		"saleId": row.get("sale_id"),
		"customerName": row.get("customer_name"),
		"dateTime": date_time,
		"productDescription": row.get("product_description"),
		"amount": float(amount) if amount is not None else None,
		"productType": row.get("product_type"),
		"paymentMethod": row.get("payment_method"),
	}


def _statistics_payload(row: Mapping[str, Any]) -> Dict[str, Any]:
	return {
		"totalVendas": int(row.get("totalVendas") or 0),
		"totalFaturamento": float(row.get("totalFaturamento") or 0),
		"totalRoupas": int(row.get("totalRoupas") or 0),
		"totalOutros": int(row.get("totalOutros") or 0),
	}


def create_app(store: Optional[Any] = None, config: Optional[Mapping[str, Any]] = None) -> Flask:
	app = Flask(__name__)
	app.config.from_object(Config)

	# Ensure env vars always take precedence (Config class attributes are evaluated at import time).
	def _env(name: str, default: Any) -> Any:
		value = os.getenv(name)
		if value is None:
			return default
		return value

	app.config["MYSQL_USER"] = _env("MYSQL_USER", app.config.get("MYSQL_USER"))
	app.config["MYSQL_PASSWORD"] = _env("MYSQL_PASSWORD", app.config.get("MYSQL_PASSWORD"))
	app.config["MYSQL_HOST"] = _env("MYSQL_HOST", app.config.get("MYSQL_HOST"))
	app.config["MYSQL_DB"] = _env("MYSQL_DB", app.config.get("MYSQL_DB"))
	app.config["MYSQL_PORT"] = int(_env("MYSQL_PORT", app.config.get("MYSQL_PORT", 3306)))
	app.config["API_PREFIX"] = _env("API_PREFIX", app.config.get("API_PREFIX"))
	app.config["SELF_PING_URL"] = _env("SELF_PING_URL", app.config.get("SELF_PING_URL"))
	if config:
		app.config.update(config)

	if store is None:
		store = MySQLSalesStore(app)
	app.extensions["sales_store"] = store

	CORS(app, send_wildcard=True)
	Swagger(app)

	prefix = (app.config.get("API_PREFIX") or "").rstrip("/")

	@app.get(f"{prefix}/status")
	def status() -> Response:
		"""Return the API status
		---
		tags:
		  - Status
		responses:
		  200:
		    description: API status
		    schema:
		      type: object
		      properties:
		        status:
		          type: string
		          example: Ok
		"""
		# Answers even for an unknown ?format=.
		return _render({"status": "Ok"}, 200, _lenient_format(), "response")

	# -------------------------
	# Sales
	# -------------------------
	@app.get(f"{prefix}/sales")
	def list_sales() -> Response:
		"""List sales, optionally filtered
		---
		tags:
		  - Sales
		parameters:
		  - name: customerName
		    in: query
		    type: string
		    description: Substring of the customer name
		  - name: saleDate
		    in: query
		    type: string
		    format: date
		    description: Calendar day of the sale (time of day is ignored)
		  - name: productType
		    in: query
		    type: string
		    description: Exact product type, empty means no filter
		responses:
		  200:
		    description: List of sales
		    schema:
		      type: array
		      items:
		        $ref: '#/definitions/Sale'
		  500:
		    description: Server error
		definitions:
		  Sale:
		    type: object
		    properties:
		      saleId:
		        type: string
		        format: uuid
		      customerName:
		        type: string
		      dateTime:
		        type: string
		        format: date-time
		      productDescription:
		        type: string
		      amount:
		        type: number
		      productType:
		        type: string
		      paymentMethod:
		        type: string
		"""
		try:
			rows = store.list_sales(SalesFilter.from_args(request.args))
			payload = [_sale_payload(r) for r in rows]
		except Exception as e:
			return _handle_db_error(e)
		return api_response(payload, root="sales")

	@app.post(f"{prefix}/sales")
	def create_sale() -> Response:
		"""Create a new sale
		---
		tags:
		  - Sales
		parameters:
		  - name: body
		    in: body
		    required: true
		    schema:
		      type: object
		      properties:
		        customerName:
		          type: string
		        dateTime:
		          type: string
		          format: date-time
		        productDescription:
		          type: string
		        amount:
		          type: number
		        productType:
		          type: string
		        paymentMethod:
		          type: string
		responses:
		  201:
		    description: Sale created
		    schema:
		      type: object
		      properties:
		        message:
		          type: string
		        saleId:
		          type: string
		          format: uuid
		  500:
		    description: Server error
		"""
		body = request.get_json(silent=True) or {}
		sale_id = str(uuid.uuid4())
		record = {
			"sale_id": sale_id,
			"customer_name": body.get("customerName"),
			"date_time": _coerce_timestamp(body.get("dateTime")),
			"product_description": body.get("productDescription"),
			"amount": body.get("amount"),
			"product_type": body.get("productType"),
			"payment_method": body.get("paymentMethod"),
		}
		try:
			store.create_sale(record)
		except Exception as e:
			return _handle_db_error(e)
		logger.info("Created sale %s", sale_id)
		return api_response({"message": "Sale created successfully", "saleId": sale_id}, status=201)

	@app.get(f"{prefix}/sales/statistics")
	def sales_statistics() -> Response:
		"""Aggregate sales between two timestamps (inclusive)
		---
		tags:
		  - Sales
		parameters:
		  - name: startDate
		    in: query
		    type: string
		    format: date-time
		    required: true
		  - name: endDate
		    in: query
		    type: string
		    format: date-time
		    required: true
		responses:
		  200:
		    description: Aggregated statistics
		    schema:
		      type: object
		      properties:
		        totalVendas:
		          type: integer
		        totalFaturamento:
		          type: number
		        totalRoupas:
		          type: integer
		        totalOutros:
		          type: integer
		  400:
		    description: startDate or endDate missing
		  500:
		    description: Server error
		"""
		start_date = request.args.get("startDate")
		end_date = request.args.get("endDate")
		if not start_date or not end_date:
			return error_response("startDate and endDate query parameters are required", 400)
		try:
			row = store.sales_statistics(parse_timestamp(start_date), parse_timestamp(end_date))
			payload = _statistics_payload(row)
		except Exception as e:
			return _handle_db_error(e)
		return api_response(payload, root="statistics")

	@app.delete(f"{prefix}/sales/<sale_id>")
	def delete_sale(sale_id: str) -> Response:
		"""Delete a sale by id
		---
		tags:
		  - Sales
		parameters:
		  - name: sale_id
		    in: path
		    type: string
		    required: true
		    description: Id of the sale to delete
		responses:
		  200:
		    description: Sale deleted
		  404:
		    description: Sale not found
		  500:
		    description: Server error
		"""
		try:
			deleted = store.delete_sale(sale_id)
		except Exception as e:
			return _handle_db_error(e)
		if deleted == 0:
			return error_response("Sale not found", 404)
		logger.info("Deleted sale %s", sale_id)
		return api_response({"message": "Sale deleted successfully"})

	# -------------------------
	# Consistent JSON/XML errors
	# -------------------------
	@app.errorhandler(BadRequest)
	def _bad_request(err: BadRequest):
		return error_response(str(err.description or "Bad request"), 400)

	@app.errorhandler(NotFound)
	def _not_found(err: NotFound):
		return error_response("Not found", 404)

	@app.errorhandler(Exception)
	def _unhandled(err: Exception):
		if isinstance(err, HTTPException):
			return error_response(str(err.description), err.code or 500)
		logger.exception("Unhandled error on %s %s", request.method, request.path)
		return error_response(str(err) or "Internal server error", 500)

	return app


def start_keepalive(app: Flask) -> Optional[KeepAlive]:
	url = app.config.get("SELF_PING_URL")
	if not url:
		return None
	keepalive = KeepAlive(url)
	keepalive.start()
	atexit.register(keepalive.stop, STOP_TIMEOUT_SECONDS)
	app.extensions["keepalive"] = keepalive
	return keepalive


app = create_app()


def main() -> None:
	logging.basicConfig(
		level=app.config.get("LOG_LEVEL", "INFO"),
		format="%(asctime)s %(levelname)s %(name)s: %(message)s",
	)
	with app.app_context():
		try:
			app.extensions["sales_store"].check_connection()
		except StoreUnavailable as exc:
			logger.error("%s", exc)
			sys.exit(1)
	logger.info("Connected to MySQL at %s/%s", app.config["MYSQL_HOST"], app.config["MYSQL_DB"])

	start_keepalive(app)

	port = int(os.getenv("PORT", 5000))
	logger.info("Docs available at http://localhost:%s/api-docs/", port)
	app.run(host="0.0.0.0", port=port, debug=True, use_reloader=False)


if __name__ == "__main__":
	main()
