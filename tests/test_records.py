import pytest
from bson import ObjectId

from conftest import register

COMPLAINT = {"title": "Leak", "description": "pipe", "category": "Plumbing", "priority": "High"}


def create(client, path, body, auth):
    response = client.post(f"/api/{path}", json=body, headers=auth["headers"])
    assert response.status_code == 201, response.text
    return response.json()


class TestComplaints:
    def test_create_fills_defaults_and_owner(self, client, student):
        body = create(client, "complaints", COMPLAINT, student)

        assert ObjectId.is_valid(body["id"])
        assert body["status"] == "Pending"
        assert body["studentId"] == student["user"]["id"]
        assert body["studentName"] == student["user"]["name"]
        assert body["room"] == student["user"]["room"]
        assert body["date"]

    def test_priority_defaults_to_medium(self, client, student):
        body = create(client, "complaints", {"title": "Fan", "description": "noisy", "category": "Electrical"},
                      student)

        assert body["priority"] == "Medium"

    @pytest.mark.parametrize("missing", ["title", "description"])
    def test_missing_required_field(self, client, student, missing):
        data = {k: v for k, v in COMPLAINT.items() if k != missing}

        response = client.post("/api/complaints", json=data, headers=student["headers"])

        assert response.status_code == 400
        assert missing in response.json()["detail"]

    def test_blank_title_rejected(self, client, student):
        response = client.post("/api/complaints", json={**COMPLAINT, "title": ""}, headers=student["headers"])

        assert response.status_code == 400

    def test_list_newest_first(self, client, student):
        create(client, "complaints", {**COMPLAINT, "title": "first"}, student)
        create(client, "complaints", {**COMPLAINT, "title": "second"}, student)

        titles = [c["title"] for c in client.get("/api/complaints", headers=student["headers"]).json()]

        assert titles == ["second", "first"]

    def test_admin_updates_status(self, client, admin, student):
        complaint = create(client, "complaints", COMPLAINT, student)

        response = client.patch(f"/api/complaints/{complaint['id']}", json={"status": "In-progress"},
                                 headers=admin["headers"])

        assert response.status_code == 200
        assert response.json()["status"] == "In-progress"
        assert response.json()["id"] == complaint["id"]

    def test_student_cannot_update_status(self, client, student):
        complaint = create(client, "complaints", COMPLAINT, student)

        response = client.patch(f"/api/complaints/{complaint['id']}", json={"status": "Resolved"},
                                headers=student["headers"])

        assert response.status_code == 403

    def test_invalid_status_rejected(self, client, admin, student):
        complaint = create(client, "complaints", COMPLAINT, student)

        response = client.patch(f"/api/complaints/{complaint['id']}", json={"status": "Done"},
                                headers=admin["headers"])

        assert response.status_code == 400

    def test_update_unknown_id(self, client, admin):
        response = client.patch(f"/api/complaints/{ObjectId()}", json={"status": "Resolved"},
                                headers=admin["headers"])

        assert response.status_code == 404
        assert response.json()["detail"] == "Complaint not found"

    def test_update_malformed_id(self, client, admin):
        response = client.patch("/api/complaints/not-an-id", json={"status": "Resolved"},
                                headers=admin["headers"])

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid id"


class TestServiceRequests:
    def test_create_and_approve(self, client, admin, student):
        body = create(client, "service-requests", {"serviceType": "Plumbing", "description": "Sink blocked"},
                      student)
        assert body["status"] == "Pending"
        assert body["requestedDate"]
        assert body["scheduledDate"] is None

        response = client.patch(f"/api/service-requests/{body['id']}", json={"status": "Approved"},
                                headers=admin["headers"])

        assert response.json()["status"] == "Approved"

    def test_list_newest_first(self, client, student):
        create(client, "service-requests", {"serviceType": "Laundry", "description": "a"}, student)
        create(client, "service-requests", {"serviceType": "Cleaning", "description": "b"}, student)

        types = [r["serviceType"] for r in client.get("/api/service-requests", headers=student["headers"]).json()]

        assert types == ["Cleaning", "Laundry"]


class TestLeaveRequests:
    @pytest.mark.parametrize("start,end,days", [
        ("2025-01-01", "2025-01-04", 3),
        ("2025-01-04", "2025-01-01", 3),
        ("2025-03-10", "2025-03-10", 1),
        ("2025-02-27", "2025-03-02", 3),
    ])
    def test_days_derived(self, client, student, start, end, days):
        body = create(client, "leave-requests", {"startDate": start, "endDate": end, "reason": "Home"}, student)

        assert body["days"] == days

    def test_client_supplied_days_ignored(self, client, student):
        body = create(client, "leave-requests",
                      {"startDate": "2025-01-01", "endDate": "2025-01-02", "reason": "Home", "days": 40}, student)

        assert body["days"] == 1

    def test_reject(self, client, admin, student):
        body = create(client, "leave-requests",
                      {"startDate": "2025-05-01", "endDate": "2025-05-03", "reason": "Trip"}, student)

        response = client.patch(f"/api/leave-requests/{body['id']}", json={"status": "Rejected"},
                                headers=admin["headers"])

        assert response.json()["status"] == "Rejected"
        assert response.json()["submissionDate"]


class TestPayments:
    def schedule(self, client, admin, student, **overrides):
        data = {"title": "Hostel Fee - Nov", "amount": 15000, "dueDate": "2025-11-10",
                "studentId": student["user"]["id"]}
        data.update(overrides)
        return create(client, "payments", data, admin)

    def test_admin_schedules_fee(self, client, admin, student):
        body = self.schedule(client, admin, student)

        assert body["status"] == "Pending"
        assert body["studentName"] == student["user"]["name"]
        assert body["room"] == student["user"]["room"]
        assert body["paidOn"] is None

    def test_student_cannot_schedule_fee(self, client, student):
        response = client.post("/api/payments", json={
            "title": "x", "amount": 1, "dueDate": "2025-01-01", "studentId": student["user"]["id"],
        }, headers=student["headers"])

        assert response.status_code == 403

    def test_unknown_student(self, client, admin):
        response = client.post("/api/payments", json={
            "title": "x", "amount": 1, "dueDate": "2025-01-01", "studentId": str(ObjectId()),
        }, headers=admin["headers"])

        assert response.status_code == 400

    def test_list_soonest_due_first(self, client, admin, student):
        self.schedule(client, admin, student, title="later", dueDate="2025-12-10")
        self.schedule(client, admin, student, title="sooner", dueDate="2025-10-10")

        titles = [p["title"] for p in client.get("/api/payments", headers=student["headers"]).json()]

        assert titles == ["sooner", "later"]

    @pytest.mark.parametrize("status", ["Pending", "Overdue"])
    def test_student_pays(self, client, admin, student, status):
        payment = self.schedule(client, admin, student, status=status)

        response = client.patch(f"/api/payments/{payment['id']}", json={"status": "Paid"},
                                headers=student["headers"])

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "Paid"
        assert body["paidOn"]
        assert body["transactionId"].startswith("TXN")

    def test_client_transaction_id_kept(self, client, admin, student):
        payment = self.schedule(client, admin, student)

        body = client.patch(f"/api/payments/{payment['id']}", json={
            "status": "Paid", "paidOn": "2025-11-01T10:00:00+00:00", "transactionId": "TXN123",
        }, headers=student["headers"]).json()

        assert body["transactionId"] == "TXN123"
        assert body["paidOn"].startswith("2025-11-01T10:00:00")

    def test_paying_twice_rejected(self, client, admin, student):
        payment = self.schedule(client, admin, student)
        first = client.patch(f"/api/payments/{payment['id']}", json={"status": "Paid"}, headers=student["headers"])

        second = client.patch(f"/api/payments/{payment['id']}", json={"status": "Paid"},
                              headers=student["headers"])

        assert second.status_code == 409
        listed = client.get("/api/payments", headers=student["headers"]).json()
        assert listed[0]["transactionId"] == first.json()["transactionId"]

    def test_student_cannot_pay_someone_elses_bill(self, client, admin, student, other_student):
        payment = self.schedule(client, admin, student)

        response = client.patch(f"/api/payments/{payment['id']}", json={"status": "Paid"},
                                headers=other_student["headers"])

        assert response.status_code == 403

    def test_student_cannot_mark_overdue(self, client, admin, student):
        payment = self.schedule(client, admin, student)

        response = client.patch(f"/api/payments/{payment['id']}", json={"status": "Overdue"},
                                headers=student["headers"])

        assert response.status_code == 403

    def test_admin_marks_overdue(self, client, admin, student):
        payment = self.schedule(client, admin, student)

        response = client.patch(f"/api/payments/{payment['id']}", json={"status": "Overdue"},
                                headers=admin["headers"])

        assert response.json()["status"] == "Overdue"

    def test_reopening_paid_payment_clears_receipt(self, client, db, admin, student):
        payment = self.schedule(client, admin, student)
        client.patch(f"/api/payments/{payment['id']}", json={"status": "Paid"}, headers=student["headers"])

        response = client.patch(f"/api/payments/{payment['id']}", json={"status": "Overdue"},
                                headers=admin["headers"])

        body = response.json()
        assert body["status"] == "Overdue"
        assert body["paidOn"] is None
        assert body["transactionId"] is None
        doc = db.payment.find_one({"_id": ObjectId(payment["id"])})
        assert "paid_on" not in doc
        assert "transaction_id" not in doc

        repaid = client.patch(f"/api/payments/{payment['id']}", json={"status": "Paid"},
                              headers=student["headers"])
        assert repaid.status_code == 200

    def test_verification_pending_is_not_a_status(self, client, admin, student):
        payment = self.schedule(client, admin, student)

        response = client.patch(f"/api/payments/{payment['id']}", json={"status": "Verification Pending"},
                                headers=student["headers"])

        assert response.status_code == 400


class TestAnnouncements:
    def test_admin_posts(self, client, admin, student):
        create(client, "announcements", {"title": "Old", "content": "a"}, admin)
        body = create(client, "announcements",
                      {"title": "Water cut", "content": "Sunday", "type": "urgent", "isPinned": True}, admin)

        assert body["type"] == "urgent"
        assert body["isPinned"] is True
        listed = client.get("/api/announcements", headers=student["headers"]).json()
        assert [a["title"] for a in listed] == ["Water cut", "Old"]

    def test_type_defaults_to_general(self, client, admin):
        body = create(client, "announcements", {"title": "Hi", "content": "there"}, admin)

        assert body["type"] == "general"
        assert body["isPinned"] is False

    def test_student_cannot_post(self, client, student):
        response = client.post("/api/announcements", json={"title": "Hi", "content": "there"},
                               headers=student["headers"])

        assert response.status_code == 403

    def test_no_update_route(self, client, admin):
        body = create(client, "announcements", {"title": "Hi", "content": "there"}, admin)

        response = client.patch(f"/api/announcements/{body['id']}", json={"status": "x"}, headers=admin["headers"])

        assert response.status_code in (404, 405)


def test_example_scenario(client):
    register(client, {"name": "Warden", "email": "a@h.com", "password": "pw123", "role": "Admin"})
    register(client, {"name": "Sam", "email": "s@h.com", "password": "pw123", "role": "User", "room": "12"})

    student = client.post("/api/auth/login", json={"email": "s@h.com", "password": "pw123"}).json()
    student_headers = {"Authorization": f"Bearer {student['token']}"}
    created = client.post("/api/complaints", json=COMPLAINT, headers=student_headers)
    assert created.status_code == 201

    admin = client.post("/api/auth/login", json={"email": "a@h.com", "password": "pw123"}).json()
    admin_headers = {"Authorization": f"Bearer {admin['token']}"}
    complaints = client.get("/api/complaints", headers=admin_headers).json()
    assert complaints[0]["title"] == "Leak"
    assert complaints[0]["status"] == "Pending"
    assert complaints[0]["room"] == "12"

    patched = client.patch(f"/api/complaints/{complaints[0]['id']}", json={"status": "Resolved"},
                           headers=admin_headers)
    assert patched.status_code == 200

    seen = client.get("/api/complaints", headers=student_headers).json()
    assert seen[0]["status"] == "Resolved"
