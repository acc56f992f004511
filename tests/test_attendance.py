API = "/smlekha"


def mark(client, student_id, date, status="present", **extra):
    body = {"studentId": student_id, "date": date, "status": status}
    body.update(extra)
    return client.post(f"{API}/attendance", json=body)


def test_one_record_per_student_per_day(client, make_assignment):
    target = make_assignment()
    first = mark(client, target["student_id"], "2026-03-02",
                 checkIn="2026-03-02T08:00:00", checkOut="2026-03-02T11:30:00")
    assert first.status_code == 201
    assert first.json()["data"]["duration"] == 210

    again = mark(client, target["student_id"], "2026-03-02", status="late")
    assert again.status_code == 400
    assert again.json()["details"]["attendanceId"] == first.json()["data"]["id"]

    assert mark(client, target["student_id"], "2026-03-03").status_code == 201


def test_update_recomputes_duration(client, make_assignment):
    target = make_assignment()
    record = mark(client, target["student_id"], "2026-03-02", checkIn="2026-03-02T08:00:00").json()["data"]
    assert record["duration"] == 0

    updated = client.put(f"{API}/attendance/{record['id']}", json={"checkOut": "2026-03-02T09:15:00"})
    assert updated.status_code == 200
    assert updated.json()["data"]["duration"] == 75

    backwards = client.put(f"{API}/attendance/{record['id']}", json={"checkOut": "2026-03-02T07:00:00"})
    assert backwards.status_code == 400


def test_invalid_status_and_unknown_student(client, make_assignment):
    target = make_assignment()
    assert mark(client, target["student_id"], "2026-03-02", status="asleep").status_code == 400
    assert mark(client, 9999, "2026-03-02").status_code == 404


def test_student_attendance_stats(client, make_assignment):
    target = make_assignment()
    for day, status in (("2026-03-02", "present"), ("2026-03-03", "late"),
                        ("2026-03-04", "absent"), ("2026-03-05", "present")):
        mark(client, target["student_id"], day, status=status)

    stats = client.get(f"{API}/attendance/stats/{target['student_id']}").json()["data"]
    assert stats["totalRecords"] == 4
    assert stats["byStatus"] == {"present": 2, "late": 1, "absent": 1}
    assert stats["attendanceRate"] == 75.0

    march_3_on = client.get(f"{API}/attendance", params={
        "studentId": target["student_id"], "startDate": "2026-03-03", "status": "present",
    }).json()
    assert [r["date"] for r in march_3_on["data"]] == ["2026-03-05"]


def test_delete_attendance(client, make_assignment):
    target = make_assignment()
    record = mark(client, target["student_id"], "2026-03-02").json()["data"]
    assert client.delete(f"{API}/attendance/{record['id']}").status_code == 200
    assert client.get(f"{API}/attendance/{record['id']}").status_code == 404
