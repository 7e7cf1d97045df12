import unittest

from backend.tests.api_testing import PREFIX, ApiTestCase


class BackendApiTests(ApiTestCase):
    def test_cors_preflight(self):
        response = self.client.options(
            f"{PREFIX}/stancer_create_payment_intent",
            headers={
                "Origin": "https://app.example.test",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "authorization, content-type",
            },
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["access-control-allow-origin"], "*")
        self.assertIn("POST", response.headers["access-control-allow-methods"])
        allowed = response.headers["access-control-allow-headers"].lower()
        self.assertIn("authorization", allowed)
        self.assertIn("apikey", allowed)

    def test_cors_headers_on_errors(self):
        response = self.client.post(
            f"{PREFIX}/stancer_confirm_payment",
            json={},
            headers={"Origin": "https://app.example.test"},
        )
        self.assertEqual(response.headers["access-control-allow-origin"], "*")

    def test_only_post_is_allowed(self):
        response = self.client.get(f"{PREFIX}/close_order")
        self.assertEqual(response.status_code, 405)
        self.assertEqual(response.json(), {"error": "Method not allowed"})

    def test_malformed_body_is_a_bad_request(self):
        response = self.client.post(
            f"{PREFIX}/close_order",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Invalid request body"})

    def test_unknown_route(self):
        response = self.client.post(f"{PREFIX}/does_not_exist", json={})
        self.assertEqual(response.status_code, 404)
        self.assertIn("error", response.json())


if __name__ == "__main__":
    unittest.main()
