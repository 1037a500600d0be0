"""Docker Swarm cluster: expansion, shrinking and failure rollback.

A NORMAL swarm gets 3 managers and 3 workers. Two workers are added, one
removed, then a second cluster is requested with an installer that fails
on a worker, to show that nothing is left behind.
"""

import asyncio

import cumulus as cc


async def main() -> None:
    installer = cc.LocalInstaller()
    tenant = cc.Tenant("dev", provider=cc.Memory(latency=0.01))
    session = await cc.Session.open(tenant, installer=installer)

    cluster = await cc.create_cluster(
        cc.ClusterRequest("swarm", "10.10.0.0/24", flavor=cc.Flavor.SWARM, complexity=cc.Complexity.NORMAL),
        session,
    )
    print("managers:", installer.installed("swarm-manager"))
    print("workers: ", installer.installed("swarm-worker"))

    added = await cluster.add_nodes(2, definition=cc.HostDefinition(cores=8))
    print("added:   ", [n.name for n in added])

    await cluster.delete_node(added[0].id)
    print("nodes:   ", [n.name for n in await cluster.list_nodes()])

    installer.fail("swarm-worker", host="broken-node-1", message="join token rejected")
    try:
        await cc.create_cluster(
            cc.ClusterRequest("broken", "10.20.0.0/24", flavor=cc.Flavor.SWARM), session,
        )
    except cc.CumulusError as e:
        print(f"construction failed: {e}")
    hosts = [h.name for h in await session.provider.list_hosts() if h.name.startswith("broken")]
    print("left behind:", hosts)

    await cluster.delete()


if __name__ == "__main__":
    asyncio.run(main())
