from rainpm.clients.catalog import MarketCatalog
from rainpm.clients.rpc import RPC
from rainpm.clients.subgraph import SubgraphLedger

__all__ = ["MarketCatalog", "RPC", "SubgraphLedger"]
