from locust import HttpUser, task, between
import random

class ApiUser(HttpUser):
    wait_time = between(0.1, 0.5)

    def on_start(self):
        # Register and log in a fresh account for this simulated client
        n = random.randint(1, 1_000_000)
        email = f"load_{n}@example.com"
        self.client.post(
            "/api/register",
            json={"name": f"user_{n}", "email": email, "user_class": "C1", "phone": "555", "password": "pw"},
        )
        r = self.client.post("/api/login", json={"email": email, "password": "pw"})
        self.token = r.json().get("token") if r.status_code == 200 else None

    @task(3)
    def create_order(self):
        if not self.token:
            return
        total = round(random.random() * 100, 2)
        self.client.post(
            "/api/orders",
            data={"orderNumber": f"L{random.randint(1, 1_000_000)}", "orderType": "pickup", "total": str(total)},
            headers={"Authorization": f"Bearer {self.token}"},
        )

    @task(1)
    def rejected_admin_listing(self):
        if not self.token:
            return
        with self.client.get(
            "/api/admin/orders", headers={"Authorization": f"Bearer {self.token}"}, catch_response=True
        ) as r:
            if r.status_code == 403:
                r.success()
