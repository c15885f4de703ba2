import pytest
import random
import string
from httpx import AsyncClient

from conftest import auth_headers

# 💀 OMEGA FUZZER: GENERATING CHAOS

def generate_garbage(length=100):
    return "".join(random.choices(string.ascii_letters + string.digits + "!@#$%^&*()", k=length))

def generate_sql_injection():
    payloads = ["' OR '1'='1", "'; DROP TABLE users--", "admin'--", "' UNION SELECT 1,2,3--"]
    return random.choice(payloads)

def generate_xss():
    payloads = ["<script>alert(1)</script>", "<img src=x onerror=alert(1)>", "javascript:alert(1)"]
    return random.choice(payloads)

@pytest.mark.asyncio
async def test_omega_issue_create_fuzz(async_client: AsyncClient, citizen):
    """Fuzz POST /issues with 60 random variations."""
    print("\n💀 FUZZING /issues with 60 iterations...")
    headers = auth_headers(citizen.email)
    for i in range(60):
        title = generate_garbage(random.randint(0, 260))
        if i % 10 == 0: title = generate_sql_injection()
        if i % 11 == 0: title = generate_xss()

        resp = await async_client.post(
            "/api/v1/issues",
            json={
                "title": title,
                "description": generate_garbage(random.randint(0, 300)),
                "category": generate_garbage(random.randint(0, 120)),
                "district": generate_garbage(random.randint(0, 120)),
                "region": generate_garbage(random.randint(0, 120)),
                "location": generate_garbage(random.randint(0, 340)),
                "image_url": generate_garbage(random.randint(0, 540)),
            },
            headers=headers,
        )
        # Either accepted or rejected by validation; NEVER 500
        assert resp.status_code in [201, 422], f"CRITICAL: {resp.status_code} on payload: {title}"

@pytest.mark.asyncio
async def test_omega_search_fuzz(async_client: AsyncClient):
    """Fuzz the public issue search with injections and LIKE wildcards."""
    for i in range(40):
        term = generate_garbage(random.randint(1, 80))
        if i % 4 == 0: term = generate_sql_injection()
        if i % 5 == 0: term = "%_%\\"
        resp = await async_client.get("/api/v1/issues", params={"search": term})
        assert resp.status_code == 200, f"Search crashed on: {term}"

@pytest.mark.asyncio
async def test_omega_token_fuzz(async_client: AsyncClient):
    """Fuzz bearer tokens; every one must be a clean 401."""
    for _ in range(30):
        token = generate_garbage(random.randint(1, 400))
        resp = await async_client.get(
            "/api/v1/users/me", headers={"Authorization": f"Bearer {token}"}
        )
        assert resp.status_code in [401, 403], f"Token check crashed with {token}"

@pytest.mark.asyncio
async def test_omega_status_fuzz(async_client: AsyncClient, issue_id, admin):
    """Fuzz status targets and ids on the transition endpoint."""
    headers = auth_headers(admin.email)
    targets = ["Open", "", "pending", "' OR 1=1", "Closed", "Resolved", generate_garbage(20)]
    for target in targets:
        resp = await async_client.patch(
            f"/api/v1/issues/{issue_id}/status", json={"status": target}, headers=headers
        )
        assert resp.status_code != 500, f"Transition crashed on target: {target}"

    for bad_id in ["0", "-1", "99999999", "abc", "1e9"]:
        resp = await async_client.patch(f"/api/v1/issues/{bad_id}/upvote", headers=headers)
        assert resp.status_code in [404, 422], f"Upvote crashed on id: {bad_id}"
