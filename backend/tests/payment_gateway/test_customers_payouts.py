"""Tests for Omise customers, stored cards, recipients and payouts."""

import pytest


class TestCustomers:
    """Customer creation, lookup and stored cards."""

    @pytest.mark.asyncio
    async def test_create_customer_sets_description(self, client, omise_api):
        omise_api.add("POST", "/customers", {"object": "customer", "id": "cust_test_1"})

        response = await client.post("/create-omise-customer", json={"email": "jane@example.com"})

        assert response.status_code == 200
        assert response.json()["id"] == "cust_test_1"
        assert omise_api.body() == {
            "email": "jane@example.com",
            "description": "Customer for jane@example.com",
        }

    @pytest.mark.asyncio
    async def test_create_customer_requires_email(self, client, omise_api):
        response = await client.post("/create-omise-customer", json={})

        assert response.status_code == 400
        assert response.json() == {"error": "Email is required."}
        assert omise_api.calls == []

    @pytest.mark.asyncio
    async def test_lookup_returns_customer_id(self, client, omise_api):
        omise_api.add("GET", "/search", {"object": "search", "data": [{"id": "cust_test_9"}]})

        response = await client.get("/get-omise-customer-id/jane@example.com")

        assert response.status_code == 200
        assert response.json() == {
            "message": "Customer ID retrieved successfully.",
            "email": "jane@example.com",
            "customerId": "cust_test_9",
        }
        params = omise_api.requests[0].url.params
        assert params["scope"] == "customer"
        assert params["query"] == "jane@example.com"
        assert params["limit"] == "1"

    @pytest.mark.asyncio
    async def test_lookup_miss_is_not_found(self, client, omise_api):
        omise_api.add("GET", "/search", {"object": "search", "data": []})

        response = await client.get("/get-omise-customer-id/nobody@example.com")

        assert response.status_code == 404
        assert response.json()["error"].startswith(
            "Customer with email 'nobody@example.com' not found."
        )

    @pytest.mark.asyncio
    async def test_lookup_failure_is_reported(self, client, omise_api):
        omise_api.add("GET", "/search", {"message": "search unavailable"}, status_code=503)

        response = await client.get("/get-omise-customer-id/jane@example.com")

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to search customer: search unavailable"}

    @pytest.mark.asyncio
    async def test_add_card_returns_newest_card(self, client, omise_api):
        omise_api.add(
            "PATCH",
            "/customers/cust_test_1",
            {
                "id": "cust_test_1",
                "cards": {"data": [{"id": "card_old"}, {"id": "card_new", "last_digits": "4242"}]},
            },
        )

        response = await client.post(
            "/add-card-to-customer",
            json={"omiseCustomerId": "cust_test_1", "cardToken": "tokn_test_1"},
        )

        assert response.status_code == 200
        assert response.json() == {"id": "card_new", "last_digits": "4242"}
        assert omise_api.body() == {"card": "tokn_test_1"}

    @pytest.mark.asyncio
    async def test_add_card_requires_customer_and_token(self, client, omise_api):
        response = await client.post("/add-card-to-customer", json={"omiseCustomerId": "cust_1"})

        assert response.status_code == 400
        assert omise_api.calls == []

    @pytest.mark.asyncio
    async def test_list_cards_returns_card_data(self, client, omise_api):
        omise_api.add(
            "GET",
            "/customers/cust_test_1/cards",
            {"object": "list", "data": [{"id": "card_1"}, {"id": "card_2"}]},
        )

        response = await client.get("/list-customer-cards/cust_test_1")

        assert response.status_code == 200
        assert response.json() == [{"id": "card_1"}, {"id": "card_2"}]


BANK_ACCOUNT = {"brand": "kbank", "number": "1234567890", "name": "Jane Doe"}


def _payout_routes(omise_api, overrides=None):
    routes = {
        ("POST", "/recipients"): ({"id": "recp_test_1"}, 200),
        ("PATCH", "/recipients/recp_test_1/verify"): ({"id": "recp_test_1", "verified": True}, 200),
        ("POST", "/transfers"): ({"id": "trsf_test_1"}, 200),
        ("POST", "/transfers/trsf_test_1/mark_as_sent"): ({"id": "trsf_test_1"}, 200),
        ("POST", "/transfers/trsf_test_1/mark_as_paid"): ({"id": "trsf_test_1"}, 200),
        ("DELETE", "/recipients/recp_test_1"): ({"deleted": True}, 200),
        ("DELETE", "/transfers/trsf_test_1"): ({"deleted": True}, 200),
    }
    routes.update(overrides or {})
    for (method, path), (body, status_code) in routes.items():
        omise_api.add(method, path, body, status_code=status_code)


class TestRecipients:

    @pytest.mark.asyncio
    async def test_create_recipient_is_individual(self, client, omise_api):
        omise_api.add("POST", "/recipients", {"id": "recp_test_1"})

        response = await client.post(
            "/create-recipient",
            json={"name": "Jane Doe", "bankAccount": BANK_ACCOUNT},
        )

        assert response.status_code == 200
        assert response.json() == {"id": "recp_test_1"}
        assert omise_api.body() == {
            "name": "Jane Doe",
            "type": "individual",
            "bank_account": BANK_ACCOUNT,
        }

    @pytest.mark.asyncio
    async def test_create_recipient_requires_bank_account(self, client, omise_api):
        response = await client.post("/create-recipient", json={"name": "Jane Doe"})

        assert response.status_code == 400
        assert omise_api.calls == []


class TestPayouts:
    """The recipient → transfer → settle chain and its cleanup."""

    @pytest.mark.asyncio
    async def test_successful_payout_runs_full_chain(self, client, omise_api):
        _payout_routes(omise_api)

        response = await client.post(
            "/create-payout",
            json={"name": "Jane Doe", "bankAccount": BANK_ACCOUNT, "amount": 50000},
        )

        assert response.status_code == 200
        assert response.json() == {"message": "Success"}
        assert omise_api.calls == [
            ("POST", "/recipients"),
            ("PATCH", "/recipients/recp_test_1/verify"),
            ("POST", "/transfers"),
            ("POST", "/transfers/trsf_test_1/mark_as_sent"),
            ("POST", "/transfers/trsf_test_1/mark_as_paid"),
            ("DELETE", "/recipients/recp_test_1"),
        ]
        assert omise_api.body(2) == {
            "amount": 50000,
            "currency": "thb",
            "recipient": "recp_test_1",
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"bankAccount": BANK_ACCOUNT, "amount": 50000},
            {"name": "Jane Doe", "amount": 50000},
            {"name": "Jane Doe", "bankAccount": BANK_ACCOUNT},
            {"name": "Jane Doe", "bankAccount": BANK_ACCOUNT, "amount": 0},
        ],
    )
    async def test_incomplete_payout_is_rejected(self, client, omise_api, payload):
        response = await client.post("/create-payout", json=payload)

        assert response.status_code == 400
        assert response.json() == {"error": "All fields are required and amount must be valid."}
        assert omise_api.calls == []

    @pytest.mark.asyncio
    async def test_failed_verification_deletes_recipient_only(self, client, omise_api):
        _payout_routes(
            omise_api,
            {
                ("PATCH", "/recipients/recp_test_1/verify"): (
                    {"message": "recipient cannot be verified"},
                    400,
                )
            },
        )

        response = await client.post(
            "/create-payout",
            json={"name": "Jane Doe", "bankAccount": BANK_ACCOUNT, "amount": 50000},
        )

        assert response.status_code == 500
        assert response.json() == {"error": "recipient cannot be verified"}
        assert ("POST", "/transfers") not in omise_api.calls
        assert omise_api.calls[-1] == ("DELETE", "/recipients/recp_test_1")

    @pytest.mark.asyncio
    async def test_failed_settlement_deletes_transfer_and_recipient(self, client, omise_api):
        _payout_routes(
            omise_api,
            {
                ("POST", "/transfers/trsf_test_1/mark_as_sent"): (
                    {"message": "transfer cannot be sent"},
                    400,
                )
            },
        )

        response = await client.post(
            "/create-payout",
            json={"name": "Jane Doe", "bankAccount": BANK_ACCOUNT, "amount": 50000},
        )

        assert response.status_code == 500
        assert response.json() == {"error": "transfer cannot be sent"}
        assert omise_api.calls[-2:] == [
            ("DELETE", "/transfers/trsf_test_1"),
            ("DELETE", "/recipients/recp_test_1"),
        ]

    @pytest.mark.asyncio
    async def test_cleanup_failure_keeps_original_error(self, client, omise_api):
        _payout_routes(
            omise_api,
            {
                ("POST", "/transfers"): ({"message": "insufficient balance"}, 400),
                ("DELETE", "/recipients/recp_test_1"): ({"message": "cannot delete"}, 500),
            },
        )

        response = await client.post(
            "/create-payout",
            json={"name": "Jane Doe", "bankAccount": BANK_ACCOUNT, "amount": 50000},
        )

        assert response.status_code == 500
        assert response.json() == {"error": "insufficient balance"}
        assert ("DELETE", "/recipients/recp_test_1") in omise_api.calls

    @pytest.mark.asyncio
    async def test_recipient_cleanup_failure_after_paid_transfer_still_succeeds(self, client, omise_api):
        _payout_routes(
            omise_api,
            {("DELETE", "/recipients/recp_test_1"): ({"message": "cannot delete"}, 500)},
        )

        response = await client.post(
            "/create-payout",
            json={"name": "Jane Doe", "bankAccount": BANK_ACCOUNT, "amount": 50000},
        )

        assert response.status_code == 200
        assert response.json() == {"message": "Success"}
        assert omise_api.calls[-2:] == [
            ("POST", "/transfers/trsf_test_1/mark_as_paid"),
            ("DELETE", "/recipients/recp_test_1"),
        ]
        assert ("DELETE", "/transfers/trsf_test_1") not in omise_api.calls
