import os
import time
import unittest


class MySQLApiTests(unittest.TestCase):
	"""Runs the API against a real MySQL database loaded with schema.sql."""

	@classmethod
	def setUpClass(cls) -> None:
		# Allow users to override these in their shell.
		os.environ.setdefault("MYSQL_DB", "sales_db")

		from app import create_app  # local import so env vars above are applied

		cls.app = create_app(config={"TESTING": True, "API_PREFIX": "/api"})
		cls.client = cls.app.test_client()

		# Verify DB is reachable and the sales table exists; otherwise skip.
		try:
			with cls.app.app_context():
				store = cls.app.extensions["sales_store"]
				store.check_connection()
				cur = store.mysql.connection.cursor()
				cur.execute("SHOW TABLES")
				tables = {list(r.values())[0] if isinstance(r, dict) else r[0] for r in cur.fetchall()}
				if "sales" not in tables:
					raise RuntimeError("Missing table: sales")
		except Exception as exc:
			raise unittest.SkipTest(
				"MySQL not reachable or schema not loaded. Run schema.sql and set env vars (MYSQL_*) first. "
				f"Details: {exc}"
			)

	def test_full_crud_flow(self):
		customer = f"IntegrationCustomer{int(time.time())}"
		created = []
		for amount, product_type in ((10.0, "Clothing"), (10.0, "Clothing"), (5.0, "Other")):
			r = self.client.post(
				"/api/sales",
				json={
					"customerName": customer,
					"dateTime": "1999-01-15T12:00:00",
					"productDescription": "Integration item",
					"amount": amount,
					"productType": product_type,
					"paymentMethod": "Card",
				},
			)
			self.assertEqual(r.status_code, 201)
			created.append(r.get_json()["saleId"])

		try:
			r = self.client.get(f"/api/sales?customerName={customer}")
			self.assertEqual(r.status_code, 200)
			self.assertEqual({s["saleId"] for s in r.get_json()}, set(created))

			r = self.client.get(f"/api/sales?customerName={customer}&productType=Other&saleDate=1999-01-15")
			self.assertEqual([s["productType"] for s in r.get_json()], ["Other"])

			r = self.client.get("/api/sales/statistics?startDate=1999-01-15&endDate=1999-01-16")
			self.assertEqual(r.status_code, 200)
			stats = r.get_json()
			self.assertGreaterEqual(stats["totalVendas"], 3)
			self.assertGreaterEqual(stats["totalRoupas"], 2)

			r = self.client.get("/api/sales/statistics?startDate=1900-01-01&endDate=1900-01-02")
			self.assertEqual(
				r.get_json(),
				{"totalVendas": 0, "totalFaturamento": 0.0, "totalRoupas": 0, "totalOutros": 0},
			)
		finally:
			for sale_id in created:
				self.assertEqual(self.client.delete(f"/api/sales/{sale_id}").status_code, 200)

		self.assertEqual(self.client.delete(f"/api/sales/{created[0]}").status_code, 404)


if __name__ == "__main__":
	unittest.main()
