"""Hello Cumulus - a BOH cluster on the in-memory provider.

Builds a "bunch of hosts" cluster behind a gateway, prints what was
created, then deletes everything:

    gw-net-hello         gateway (public IP, reverse proxy)
    hello-master-1       master
    hello-node-1         private node
"""

import asyncio

import cumulus as cc


async def main() -> None:
    tenant = cc.Tenant("dev", provider=cc.Memory(), dns_servers=("1.1.1.1",))
    session = await cc.Session.open(tenant)

    request = cc.ClusterRequest("hello", "192.168.10.0/24")
    cluster = await cc.create_cluster(request, session, logging=True)

    network = await cluster.network_config()
    print(f"cluster {cluster.name}: {(await cluster.state()).name}")
    print(f"  gateway  {network.gateway_ip} (public {network.public_ip})")
    for master in await cluster.list_masters():
        print(f"  master   {master.name} {master.private_ip}")
    for node in await cluster.list_nodes():
        print(f"  node     {node.name} {node.private_ip}")

    await cc.delete_cluster("hello", session)


if __name__ == "__main__":
    asyncio.run(main())
