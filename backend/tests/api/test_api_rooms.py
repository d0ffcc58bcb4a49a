"""
房间公开查询 API 测试
"""
from datetime import date, timedelta


class TestRoomsApi:

    def test_list_rooms_public(self, client, sample_room, other_room):
        response = client.get("/rooms")
        assert response.status_code == 200
        rooms = response.json()
        assert [r["room_number"] for r in rooms] == ["101", "102"]
        assert rooms[1]["current_price"] == 100.0

    def test_list_rooms_by_dates(self, client, make_booking, other_room):
        make_booking()
        tomorrow = date.today() + timedelta(days=1)
        response = client.get("/rooms", params={
            "check_in": tomorrow.isoformat(),
            "check_out": (tomorrow + timedelta(days=1)).isoformat()
        })
        assert [r["room_number"] for r in response.json()] == ["102"]

    def test_room_types(self, client, sample_room):
        types = client.get("/rooms/types").json()
        assert types[0]["type_name"] == "Standard"
        assert types[0]["room_count"] == 1

    def test_room_detail(self, client, sample_room):
        response = client.get(f"/rooms/{sample_room.id}")
        assert response.status_code == 200
        assert response.json()["amenities"] == ["WiFi", "TV"]

    def test_room_not_found(self, client):
        assert client.get("/rooms/999").status_code == 404

    def test_availability(self, client, sample_room, make_booking):
        booking = make_booking()
        response = client.get(f"/rooms/{sample_room.id}/availability", params={
            "check_in": booking.check_in_date.isoformat(),
            "check_out": booking.check_out_date.isoformat()
        })
        assert response.json()["available"] is False

        response = client.get(f"/rooms/{sample_room.id}/availability", params={
            "check_in": booking.check_out_date.isoformat(),
            "check_out": (booking.check_out_date + timedelta(days=2)).isoformat()
        })
        assert response.json()["available"] is True

    def test_availability_bad_range(self, client, sample_room):
        today = date.today().isoformat()
        response = client.get(f"/rooms/{sample_room.id}/availability",
                              params={"check_in": today, "check_out": today})
        assert response.status_code == 400
