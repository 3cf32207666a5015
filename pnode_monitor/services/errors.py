from dataclasses import dataclass


class PrpcError(Exception):
    """Respuesta pRPC inválida: error JSON-RPC o payload con forma inesperada."""


class GeoLookupError(Exception):
    """El proveedor geo-IP respondió con error o con un payload inutilizable."""


@dataclass(frozen=True)
class EndpointFailure:
    endpoint: str
    reason: str


class AllEndpointsFailed(Exception):
    def __init__(self, failures: list[EndpointFailure]):
        self.failures = list(failures)
        detail = "; ".join(f"{f.endpoint}: {f.reason}" for f in self.failures)
        super().__init__(f"all {len(self.failures)} endpoints failed ({detail})")
