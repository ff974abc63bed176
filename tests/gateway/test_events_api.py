"""事件 API 测试

测试内容：
1. 创建/查询/更新/删除的状态码与响应体
2. 错误映射：400 / 404 / 409
3. 状态流转与级联结果
4. 列表筛选与排序
"""

from httpx import AsyncClient


async def _create(client: AsyncClient, name: str, **body) -> dict:
    resp = await client.post("/api/events", json={"name": name, **body})
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestCreateAndRead:
    async def test_create_returns_201(self, client: AsyncClient):
        data = await _create(client, "Buy milk", tags={"area": "home"})
        assert data["status"] == "Pending"
        assert data["tags"] == {"area": "home"}
        assert len(data["id"]) == 26

    async def test_create_with_dependency_is_blocked(self, client: AsyncClient):
        a = await _create(client, "A")
        b = await _create(client, "B", dependencies=[a["id"]])
        assert b["status"] == "Blocked"

    async def test_get_event(self, client: AsyncClient):
        a = await _create(client, "A")
        resp = await client.get(f"/api/events/{a['id']}")
        assert resp.status_code == 200
        assert resp.json() == a

    async def test_get_unknown_returns_404(self, client: AsyncClient):
        resp = await client.get("/api/events/01JNOTEXIST000000000000000")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "EVENT_NOT_FOUND"

    async def test_empty_name_returns_400(self, client: AsyncClient):
        resp = await client.post("/api/events", json={"name": "   "})
        assert resp.status_code == 400
        error = resp.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["field"] == "name"

    async def test_malformed_body_returns_400(self, client: AsyncClient):
        resp = await client.post("/api/events", json={"description": "no name"})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_unknown_dependency_returns_400(self, client: AsyncClient):
        resp = await client.post(
            "/api/events",
            json={"name": "A", "dependencies": ["01JNOTEXIST000000000000000"]},
        )
        assert resp.status_code == 400


class TestList:
    async def test_list_filters(self, client: AsyncClient):
        a = await _create(client, "Buy milk", tags={"area": "home"})
        await _create(client, "Report", tags={"area": "work"})
        await _create(client, "After milk", dependencies=[a["id"]])

        resp = await client.get("/api/events", params={"tag": "area:home"})
        assert [e["name"] for e in resp.json()["events"]] == ["Buy milk"]

        resp = await client.get("/api/events", params={"status": "Blocked"})
        assert [e["name"] for e in resp.json()["events"]] == ["After milk"]

        resp = await client.get("/api/events", params={"search": "milk"})
        assert {e["name"] for e in resp.json()["events"]} == {"Buy milk", "After milk"}

    async def test_invalid_tag_filter_returns_400(self, client: AsyncClient):
        resp = await client.get("/api/events", params={"tag": "no-separator"})
        assert resp.status_code == 400

    async def test_invalid_status_returns_400(self, client: AsyncClient):
        resp = await client.get("/api/events", params={"status": "Done"})
        assert resp.status_code == 400

    async def test_sorted_uses_preferences(self, client: AsyncClient):
        for p in ["1", "3", "2"]:
            await _create(client, f"p{p}", tags={"priority": p})
        await client.put(
            "/api/preferences/sort/rules/priority", json={"direction": "desc"}
        )
        await client.put("/api/preferences/sort/enabled", json={"enabled": True})

        resp = await client.get("/api/events", params={"sorted": "true"})
        assert [e["name"] for e in resp.json()["events"]] == ["p3", "p2", "p1"]


class TestUpdateAndDelete:
    async def test_patch_merges_fields(self, client: AsyncClient):
        a = await _create(client, "A", description="old", tags={"k": "v"})
        resp = await client.patch(f"/api/events/{a['id']}", json={"description": "new"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["description"] == "new"
        assert data["tags"] == {"k": "v"}

    async def test_patch_cycle_returns_409(self, client: AsyncClient):
        a = await _create(client, "A")
        b = await _create(client, "B", dependencies=[a["id"]])
        resp = await client.patch(
            f"/api/events/{a['id']}", json={"dependencies": [b["id"]]}
        )
        assert resp.status_code == 409
        error = resp.json()["error"]
        assert error["code"] == "CYCLIC_DEPENDENCY"
        assert error["cycle"] == [a["id"], b["id"], a["id"]]

    async def test_delete_detaches_dependents(self, client: AsyncClient):
        a = await _create(client, "A")
        b = await _create(client, "B", dependencies=[a["id"]])

        resp = await client.delete(f"/api/events/{a['id']}")
        assert resp.status_code == 200
        data = resp.json()
        assert data["deleted_id"] == a["id"]
        assert [e["id"] for e in data["detached"]] == [b["id"]]

        stored_b = (await client.get(f"/api/events/{b['id']}")).json()
        assert stored_b["dependencies"] == []
        assert stored_b["status"] == "Blocked"

        resp = await client.get(f"/api/events/{a['id']}")
        assert resp.status_code == 404

    async def test_dependency_queries(self, client: AsyncClient):
        a = await _create(client, "A")
        b = await _create(client, "B", dependencies=[a["id"]])

        deps = (await client.get(f"/api/events/{b['id']}/dependencies")).json()
        assert [e["id"] for e in deps["events"]] == [a["id"]]

        dependents = (await client.get(f"/api/events/{a['id']}/dependents")).json()
        assert [e["id"] for e in dependents["events"]] == [b["id"]]


class TestStatus:
    async def test_complete_unblocks_dependent(self, client: AsyncClient):
        a = await _create(client, "A")
        b = await _create(client, "B", dependencies=[a["id"]])

        resp = await client.post(
            f"/api/events/{a['id']}/status", json={"status": "Completed"}
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["updated"] == {a["id"]: "Completed", b["id"]: "Pending"}
        assert data["failures"] == []

    async def test_invalid_status_value_returns_400(self, client: AsyncClient):
        a = await _create(client, "A")
        resp = await client.post(f"/api/events/{a['id']}/status", json={"status": "Done"})
        assert resp.status_code == 400

    async def test_status_unknown_event_returns_404(self, client: AsyncClient):
        resp = await client.post(
            "/api/events/01JNOTEXIST000000000000000/status",
            json={"status": "Completed"},
        )
        assert resp.status_code == 404

    async def test_retry_unblock_noop(self, client: AsyncClient):
        a = await _create(client, "A")
        b = await _create(client, "B", dependencies=[a["id"]])
        resp = await client.post(f"/api/events/{b['id']}/unblock")
        assert resp.status_code == 200
        assert resp.json()["target"]["status"] == "Blocked"


class TestDisplayTags:
    async def test_tags_in_display_order(self, client: AsyncClient):
        a = await _create(client, "A", tags={"zeta": "1", "area": "home", "alpha": "x"})
        await client.put("/api/preferences/sort/rules/zeta", json={})
        await client.put("/api/preferences/sort/enabled", json={"enabled": True})

        resp = await client.get(f"/api/events/{a['id']}/tags")
        assert [t["key"] for t in resp.json()["tags"]] == ["zeta", "alpha", "area"]
