import random
import sys
import uuid
from datetime import datetime, timedelta

from app import create_app


CUSTOMERS = ["Ana Souza", "Mariana Lima", "Joao Pereira", "Carla Dias", "Pedro Alves"]
PRODUCTS = [
	("Jacket", "Clothing"),
	("T-shirt", "Clothing"),
	("Dress", "Clothing"),
	("Mug", "Other"),
	("Book", "Other"),
]
PAYMENT_METHODS = ["Card", "Cash", "Pix"]


def ensure_min_sales(min_count: int = 20) -> int:
	app = create_app(config={"TESTING": True})
	store = app.extensions["sales_store"]

	with app.app_context():
		cur = store.mysql.connection.cursor()
		cur.execute("SELECT COUNT(*) AS c FROM sales")
		current = int(cur.fetchone()["c"])
		if current >= min_count:
			return 0

		to_add = min_count - current
		base = datetime(2024, 1, 1, 9, 0)
		for _ in range(to_add):
			description, product_type = random.choice(PRODUCTS)
			store.create_sale(
				{
					"sale_id": str(uuid.uuid4()),
					"customer_name": random.choice(CUSTOMERS),
					"date_time": base + timedelta(days=random.randint(0, 60), minutes=random.randint(0, 600)),
					"product_description": description,
					"amount": round(random.uniform(5.0, 300.0), 2),
					"product_type": product_type,
					"payment_method": random.choice(PAYMENT_METHODS),
				}
			)
		return to_add


if __name__ == "__main__":
	try:
		added = ensure_min_sales(20)
		print(f"Added {added} sales rows")
	except Exception as exc:
		print(f"ERROR: {exc}")
		sys.exit(1)
