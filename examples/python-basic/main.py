import os

from chainsign import GatewayClient, GatewayConfig

client = GatewayClient(
    GatewayConfig(
        rest_url=os.getenv("GATEWAY_REST_URL", "http://localhost:32081"),
        isv_ak=os.getenv("GATEWAY_ISV_AK", ""),
        tenant_id=os.getenv("GATEWAY_TENANT_ID", ""),
    ),
    shared_secret=os.getenv("GATEWAY_ISV_SK", ""),
)

projects = client.page_query_projects(page=1, page_size=10)
print("success:", projects.get("success"))

created = client.request(
    "POST",
    "/api/datasource/create",
    body={"name": "api_test", "description": "api_test", "writable": True, "type": "MYSQL"},
)
print("datasource:", created.get("data"))
