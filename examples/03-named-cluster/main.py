"""Named cluster from TOML configuration.

Builds the cluster defined in cumulus.toml and lists its members.

    cd examples/03-named-cluster
    python main.py
"""

import asyncio

import cumulus as cc


async def main() -> None:
    request, tenant = cc.resolve_request("demo")
    session = await cc.Session.open(tenant)
    cluster = await cc.create_cluster(request, session)

    for node in [*await cluster.list_masters(), *await cluster.list_nodes()]:
        host = await session.provider.get_host(node.id)
        print(f"  {node.name:<16} {node.private_ip:<16} {host.template_id}")

    await cc.delete_cluster(request.name, session)


if __name__ == "__main__":
    asyncio.run(main())
