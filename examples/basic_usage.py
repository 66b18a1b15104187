"""Basic usage example for cbdb-network-lib."""

import sys
import tempfile
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


from cbdb_network import (
    NetworkConfig,
    PersonNetworkService,
    PersonSearchService,
    SQLiteRelationStore,
)


def build_demo_store(path: Path) -> SQLiteRelationStore:
    store = SQLiteRelationStore(path)
    store.add_person(1762, name="Wang Anshi", name_chn="王安石", birth_year=1021, death_year=1086)
    store.add_person(526, name="Wang Yi", name_chn="王益", birth_year=994, death_year=1039)
    store.add_person(999, name="Su Shi", name_chn="蘇軾", birth_year=1037, death_year=1101)
    store.add_person(1384, name="Ouyang Xiu", name_chn="歐陽修", birth_year=1007, death_year=1072)
    store.add_kinship(1762, 526, code=75, label="F")
    store.add_association(1762, 999, code=9, label="Friend")
    store.add_association(999, 1384, code=9, label="Friend")
    store.add_alt_name(1762, alt_name="Jiefu", alt_name_chn="介甫")
    return store


def main():
    print("=" * 60)
    print("cbdb-network-lib - Basic Usage Example")
    print("=" * 60)

    workdir = Path(tempfile.mkdtemp(prefix="cbdb-demo-"))
    store = build_demo_store(workdir / "cbdb.sqlite3")
    config = NetworkConfig(max_workers=2)

    # 1. Search by name, most connected first
    print("\n1. Searching for 'wang'...")
    search = PersonSearchService(store, config)
    result = search.search_by_name("wang", sort_by_importance=True)
    for record in result.data:
        print(f"   {record.person_id}: {record.display_name}")
    print(f"   Total matches: {result.total}")

    # 2. Explore the network around Wang Anshi
    print("\n2. Exploring network around 1762 (depth 2)...")
    with PersonNetworkService(store, config) as service:
        network = service.explore_network([1762], depth=2, seed=42)
        for node in network.snapshot.nodes:
            attrs = node.attributes
            print(f"   {node.label:<6} depth={attrs['depth']} ({attrs['x']:.1f}, {attrs['y']:.1f})")
        for edge in network.snapshot.edges:
            print(f"   {edge.source} -[{edge.edge_type.value}:{edge.label}]-> {edge.target}")

        # 3. Metrics and insights
        print("\n3. Metrics...")
        if network.metrics:
            print(f"   Density: {network.metrics.density:.3f}")
            print(f"   Components: {network.metrics.component_count}")
        for insight in network.insights:
            print(f"   - {insight}")
        if network.partial:
            print(f"   Partial result: {network.errors}")

        # 4. Export for Gephi
        print("\n4. Exporting GEXF...")
        path = service.export_network_to_gexf(1762, workdir / "wang_anshi.gexf", seed=42)
        print(f"   Wrote {path}")

    store.close()
    print("\n" + "=" * 60)


if __name__ == "__main__":
    main()
