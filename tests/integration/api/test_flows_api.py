"""Flows API 集成测试

使用 FastAPI TestClient + SQLite 内存数据库，覆盖：
- 创建 / 获取 / 更新 / 删除 / 列表
- 启用时强校验（422 + violations）
- 请求格式错误（400）
- 校验与试运行接口
"""

from fastapi.testclient import TestClient

from leadflow.infrastructure.serialization.flow_wire import encode_flow


def _create(client: TestClient, payload: dict) -> dict:
    response = client.post("/api/v1/flows", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


class TestCreateAndRead:
    def test_create_assigns_id_and_timestamps(self, client, branching_flow):
        body = _create(client, encode_flow(branching_flow))

        assert body["id"]
        assert body["name"] == "Qualified leads to dialer"
        assert body["is_active"] is False
        assert body["created_at"] is not None
        assert len(body["flow_data"]["nodes"]) == 4

    def test_get_returns_saved_graph(self, client, branching_flow):
        created = _create(client, encode_flow(branching_flow))

        response = client.get(f"/api/v1/flows/{created['id']}")

        assert response.status_code == 200
        assert response.json()["flow_data"] == created["flow_data"]

    def test_get_missing_flow_is_404(self, client):
        response = client.get("/api/v1/flows/ghost")

        assert response.status_code == 404

    def test_list_flows(self, client, branching_flow, template_flow):
        _create(client, encode_flow(branching_flow))
        _create(client, encode_flow(template_flow))

        response = client.get("/api/v1/flows")

        assert response.status_code == 200
        assert {flow["name"] for flow in response.json()} == {
            branching_flow.name,
            template_flow.name,
        }

    def test_draft_with_violations_can_be_created(self, client, template_flow):
        payload = encode_flow(template_flow)
        payload["flow_data"]["edges"] = []

        body = _create(client, payload)

        assert body["flow_data"]["edges"] == []


class TestActivation:
    def test_activating_invalid_flow_is_rejected_with_violations(self, client, template_flow):
        payload = encode_flow(template_flow)
        payload["flow_data"]["nodes"].append(
            {"id": "condition_1", "type": "condition", "data": {}, "position": {"x": 0, "y": 0}}
        )
        payload["is_active"] = True

        response = client.post("/api/v1/flows", json=payload)

        assert response.status_code == 422
        body = response.json()
        kinds = {v["kind"] for v in body["violations"]}
        assert "UnreachableNode" in kinds
        assert all(v.get("node_id") == "condition_1" for v in body["violations"])
        assert client.get("/api/v1/flows").json() == []

    def test_activate_existing_flow(self, client, branching_flow):
        created = _create(client, encode_flow(branching_flow))
        created["is_active"] = True

        response = client.put(f"/api/v1/flows/{created['id']}", json=created)

        assert response.status_code == 200
        body = response.json()
        assert body["is_active"] is True
        assert body["created_at"] == created["created_at"]

    def test_update_missing_flow_is_404(self, client, branching_flow):
        response = client.put("/api/v1/flows/ghost", json=encode_flow(branching_flow))

        assert response.status_code == 404


class TestBadRequests:
    def test_blank_name_is_400(self, client, template_flow):
        payload = encode_flow(template_flow)
        payload["name"] = "  "

        response = client.post("/api/v1/flows", json=payload)

        assert response.status_code == 400

    def test_missing_name_is_400(self, client):
        response = client.post("/api/v1/flows", json={"flow_data": {"nodes": [], "edges": []}})

        assert response.status_code == 400

    def test_unknown_node_type_is_400(self, client, template_flow):
        payload = encode_flow(template_flow)
        payload["flow_data"]["nodes"].append({"id": "x", "type": "webhook", "data": {}})

        response = client.post("/api/v1/flows", json=payload)

        assert response.status_code == 400


class TestDelete:
    def test_delete_then_404(self, client, branching_flow):
        created = _create(client, encode_flow(branching_flow))

        first = client.delete(f"/api/v1/flows/{created['id']}")
        second = client.delete(f"/api/v1/flows/{created['id']}")

        assert first.status_code == 204
        assert second.status_code == 404
        assert client.get(f"/api/v1/flows/{created['id']}").status_code == 404


class TestValidateAndDryRun:
    def test_validate_reports_violations(self, client, template_flow):
        payload = encode_flow(template_flow)
        payload["flow_data"]["edges"] = []
        created = _create(client, payload)

        response = client.post(f"/api/v1/flows/{created['id']}/validate")

        assert response.status_code == 200
        body = response.json()
        assert body["valid"] is False
        assert "UnreachableNode" in {v["kind"] for v in body["violations"]}

    def test_validate_valid_flow(self, client, branching_flow):
        created = _create(client, encode_flow(branching_flow))

        body = client.post(f"/api/v1/flows/{created['id']}/validate").json()

        assert body == {"valid": True, "violations": []}

    def test_dry_run_returns_commands(self, client, branching_flow, sample_lead):
        created = _create(client, encode_flow(branching_flow))

        response = client.post(
            f"/api/v1/flows/{created['id']}/dry-run", json={"lead": sample_lead}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["completed"] is True
        assert body["visited_node_ids"] == ["start_1", "condition_1", "action_1", "end_1"]
        assert [c["action_type"] for c in body["commands"]] == ["add_to_bucket"]
        assert body["commands"][0]["payload"]["bucket_id"] == "bucket-1"

    def test_dry_run_missing_flow_is_404(self, client):
        response = client.post("/api/v1/flows/ghost/dry-run", json={"lead": {}})

        assert response.status_code == 404


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
