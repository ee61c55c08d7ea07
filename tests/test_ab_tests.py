"""A/B test management and results endpoint tests."""

import pytest


@pytest.fixture
def tests_url(seed_workspace):
    return f"/workspaces/{seed_workspace.workspace_id}/tests"


async def test_create_and_get(test_client, auth_headers, tests_url, ab_test_factory):
    created = await ab_test_factory()
    assert created["test_id"] == "greeting-test"
    assert created["status"] == "active"
    assert [v["name"] for v in created["variants"]] == ["control", "candidate"]
    assert created["variants"][1]["params"] == {"temperature": 0.2}

    resp = await test_client.get(f"{tests_url}/greeting-test", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["ab_test_id"] == created["ab_test_id"]


async def test_list(test_client, auth_headers, tests_url, ab_test_factory):
    await ab_test_factory("first")
    await ab_test_factory("second")

    resp = await test_client.get(tests_url, headers=auth_headers)
    assert resp.status_code == 200
    assert {t["test_id"] for t in resp.json()} == {"first", "second"}


async def test_duplicate_test_id_conflicts(test_client, auth_headers, tests_url, ab_test_factory):
    await ab_test_factory()
    resp = await test_client.post(
        tests_url,
        json={
            "test_id": "greeting-test",
            "name": "Again",
            "variants": [{"name": "a", "model": "openai/gpt-4o", "weight": 1}],
        },
        headers=auth_headers,
    )
    assert resp.status_code == 409


async def test_same_test_id_in_other_workspace(test_client, other_workspace, ab_test_factory):
    await ab_test_factory()
    resp = await test_client.post(
        f"/workspaces/{other_workspace.workspace_id}/tests",
        json={
            "test_id": "greeting-test",
            "name": "Greeting",
            "variants": [{"name": "a", "model": "openai/gpt-4o", "weight": 1}],
        },
        headers=other_workspace.headers,
    )
    assert resp.status_code == 201


@pytest.mark.parametrize(
    "variants",
    [
        [],
        [{"name": "a", "model": "gpt-4o", "weight": 1}],
        [{"name": "a", "model": "openai/gpt-4o", "weight": 0}],
        [{"name": "a", "model": "zeroeval/other", "weight": 1}],
        [
            {"name": "a", "model": "openai/gpt-4o", "weight": 1},
            {"name": "a", "model": "openai/gpt-4o-mini", "weight": 1},
        ],
    ],
    ids=["empty", "no-provider", "zero-weight", "nested-test", "duplicate-names"],
)
async def test_invalid_variants_rejected(test_client, auth_headers, tests_url, variants):
    resp = await test_client.post(
        tests_url,
        json={"test_id": "bad", "name": "Bad", "variants": variants},
        headers=auth_headers,
    )
    assert resp.status_code == 422


async def test_invalid_test_id_rejected(test_client, auth_headers, tests_url):
    resp = await test_client.post(
        tests_url,
        json={
            "test_id": "has spaces",
            "name": "Bad",
            "variants": [{"name": "a", "model": "openai/gpt-4o", "weight": 1}],
        },
        headers=auth_headers,
    )
    assert resp.status_code == 422


async def test_update_status(test_client, auth_headers, tests_url, ab_test_factory):
    await ab_test_factory()
    resp = await test_client.patch(
        f"{tests_url}/greeting-test", json={"status": "paused"}, headers=auth_headers
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "paused"

    resp = await test_client.get(f"{tests_url}/greeting-test", headers=auth_headers)
    assert resp.json()["status"] == "paused"


async def test_missing_test_is_404(test_client, auth_headers, tests_url):
    resp = await test_client.get(f"{tests_url}/nope", headers=auth_headers)
    assert resp.status_code == 404
    resp = await test_client.patch(
        f"{tests_url}/nope", json={"status": "paused"}, headers=auth_headers
    )
    assert resp.status_code == 404
    resp = await test_client.get(f"{tests_url}/nope/results", headers=auth_headers)
    assert resp.status_code == 404


async def test_results_aggregate_signals_per_variant(
    test_client, auth_headers, seed_workspace, tests_url, ab_test_factory, mock_llm
):
    await ab_test_factory(
        "single",
        variants=[{"name": "only", "model": "openai/gpt-4o-mini", "weight": 1}],
    )

    completion_ids = []
    for _ in range(3):
        resp = await test_client.post(
            "/proxy/chat/completions",
            json={"model": "zeroeval/single", "messages": [{"role": "user", "content": "hi"}]},
            headers=auth_headers,
        )
        assert resp.status_code == 200, resp.text
        completion_ids.append(resp.headers["X-ZeroEval-Completion-Id"])

    signals_url = f"/workspaces/{seed_workspace.workspace_id}/tests/signals"
    for completion_id, accepted, rating in zip(completion_ids, [True, True, False], [5, 3, 1]):
        await test_client.post(
            signals_url,
            json={"completion_id": completion_id, "name": "accepted", "value": accepted},
            headers=auth_headers,
        )
        await test_client.post(
            signals_url,
            json={"completion_id": completion_id, "name": "rating", "value": rating},
            headers=auth_headers,
        )
    await test_client.post(
        f"/workspaces/{seed_workspace.workspace_id}/signals",
        json={"completion_id": completion_ids[0], "name": "tone", "value": "friendly"},
        headers=auth_headers,
    )

    resp = await test_client.get(f"{tests_url}/single/results", headers=auth_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["total_completions"] == 3

    [variant] = data["variants"]
    assert variant["completions"] == 3
    assert variant["failed_completions"] == 0
    assert variant["signals"]["accepted"]["count"] == 3
    assert variant["signals"]["accepted"]["true_rate"] == pytest.approx(2 / 3)
    assert variant["signals"]["rating"]["mean"] == pytest.approx(3.0)
    assert variant["signals"]["tone"]["counts"] == {"friendly": 1}


async def test_results_for_unused_test(test_client, auth_headers, tests_url, ab_test_factory):
    await ab_test_factory()
    resp = await test_client.get(f"{tests_url}/greeting-test/results", headers=auth_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["total_completions"] == 0
    assert all(v["completions"] == 0 and v["signals"] == {} for v in data["variants"])
