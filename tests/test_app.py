import logging


def _create_loan(client, payload):
    response = client.post("/api/loans", json=payload)
    assert response.status_code == 201
    return response.get_json()


def test_health(client):
    assert client.get("/health").get_json() == {"status": "ok"}


def test_loan_crud(client, loan_payload):
    assert client.get("/api/loans").get_json() == []
    loan = _create_loan(client, loan_payload)

    assert client.get(f"/api/loans/{loan['id']}").get_json()["name"] == "Haus"
    assert len(client.get("/api/loans").get_json()) == 1

    response = client.put(f"/api/loans/{loan['id']}", json={"name": "Neubau"})
    assert response.status_code == 200
    assert response.get_json()["name"] == "Neubau"

    assert client.delete(f"/api/loans/{loan['id']}").status_code == 204
    assert client.get(f"/api/loans/{loan['id']}").status_code == 404


def test_create_loan_validation_error(client, loan_payload):
    loan_payload["fixedInterestYears"] = 0
    response = client.post("/api/loans", json=loan_payload)
    assert response.status_code == 400
    assert "fixedInterestYears" in response.get_json()["error"]


def test_invalid_body(client):
    response = client.post("/api/loans", data="not json", content_type="application/json")
    assert response.status_code == 400
    assert response.get_json() == {"error": "Invalid request body"}


def test_unknown_loan(client):
    assert client.put("/api/loans/nope", json={"name": "x"}).status_code == 404
    assert client.delete("/api/loans/nope").status_code == 404
    assert client.get("/api/loans/nope/schedule").status_code == 404
    response = client.post("/api/loans/nope/special-payments", json={"date": "2024-06-15", "amount": 10})
    assert response.status_code == 404


def test_special_payment_endpoints(client, loan_payload):
    loan = _create_loan(client, loan_payload)
    url = f"/api/loans/{loan['id']}/special-payments"

    response = client.post(url, json={"date": "2024-06-15", "amount": 5000, "note": "Bonus"})
    assert response.status_code == 201
    payment = response.get_json()
    assert payment["amount"] == 5000
    assert payment["note"] == "Bonus"

    assert client.post(url, json={"date": "2024-06-15", "amount": -1}).status_code == 400

    loan = client.get(f"/api/loans/{loan['id']}").get_json()
    assert [p["id"] for p in loan["specialPayments"]] == [payment["id"]]

    assert client.delete(f"{url}/{payment['id']}").status_code == 204
    assert client.delete(f"{url}/{payment['id']}").status_code == 404


def test_schedule_endpoint(client, loan_payload):
    loan = _create_loan(client, loan_payload)
    data = client.get(f"/api/loans/{loan['id']}/schedule").get_json()
    assert data["monthlyInstallment"] == 1375.0
    assert data["paidOff"] is True
    assert data["fixedPeriodEndDate"] == "2034-01-01"
    assert data["months"] == len(data["schedule"])
    first = data["schedule"][0]
    assert first["date"] == "2024-01-01"
    assert first["interest"] == 875.0
    assert first["principal"] == 500.0
    assert first["remainingBalance"] == 299500.0
    assert sum(1 for r in data["schedule"] if r["isFixedPeriodEnd"]) == 1


def test_comparison_and_impacts(client, loan_payload):
    loan = _create_loan(client, loan_payload)
    url = f"/api/loans/{loan['id']}"
    first = client.post(f"{url}/special-payments", json={"date": "2024-06-15", "amount": 5000}).get_json()
    client.post(f"{url}/special-payments", json={"date": "2025-06-15", "amount": 5000})

    comparison = client.get(f"{url}/comparison").get_json()
    assert comparison["interestSaved"] > 0
    assert comparison["monthsSaved"] > 0
    assert comparison["capitalDifferenceAtFixedEnd"] > 10000
    assert comparison["baseline"]["months"] > comparison["actual"]["months"]

    impacts = client.get(f"{url}/impacts").get_json()
    assert [i["paymentId"] for i in impacts][0] == first["id"]
    assert all(i["interestSaved"] > 0 for i in impacts)

    single = client.get(f"{url}/special-payments/{first['id']}/impact").get_json()
    assert single == impacts[0]
    assert client.get(f"{url}/special-payments/unknown/impact").status_code == 404


def test_yearly_endpoint(client, loan_payload):
    loan = _create_loan(client, loan_payload)
    years = client.get(f"/api/loans/{loan['id']}/yearly").get_json()
    assert years[0]["year"] == 2024
    assert years[-1]["endBalance"] == 0


def test_non_terminating_loan_is_reported(client, loan_payload):
    loan_payload.update(repaymentType="ABSOLUTE", repaymentValue=100)
    loan = _create_loan(client, loan_payload)
    data = client.get(f"/api/loans/{loan['id']}/schedule").get_json()
    assert data["paidOff"] is False
    assert data["months"] == 720


def test_non_finite_numbers_are_rejected(client):
    body = (
        '{"name": "Haus", "amount": 1e400, "interestRate": 3.5, "startDate": "2024-01-01",'
        ' "fixedInterestYears": 10, "repaymentType": "PERCENTAGE", "repaymentValue": 2}'
    )
    response = client.post("/api/loans", data=body, content_type="application/json")
    assert response.status_code == 400
    assert response.get_json() == {"error": "amount must be a finite number"}

    response = client.post(
        "/api/loans", data=body.replace("1e400", "300000").replace("3.5", "NaN"), content_type="application/json"
    )
    assert response.status_code == 400
    assert "interestRate" in response.get_json()["error"]
    assert client.get("/api/loans").get_json() == []


def test_non_finite_special_payment_is_rejected(client, loan_payload):
    loan = _create_loan(client, loan_payload)
    response = client.post(
        f"/api/loans/{loan['id']}/special-payments",
        data='{"date": "2024-06-15", "amount": Infinity}',
        content_type="application/json",
    )
    assert response.status_code == 400
    assert client.get(f"/api/loans/{loan['id']}/schedule").status_code == 200


def test_requests_are_logged(client, caplog):
    caplog.set_level(logging.INFO, logger="baufi_calc_web.app")
    client.get("/health")
    client.get("/api/loans/nope")
    messages = [r.getMessage() for r in caplog.records if r.name == "baufi_calc_web.app"]
    assert any(m.startswith("GET /health 200 ") and m.endswith("ms") for m in messages)
    assert any(m.startswith("GET /api/loans/nope 404 ") for m in messages)
