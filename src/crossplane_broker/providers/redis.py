"""Binder for the replicated Redis service (redis-k8s)."""

from crossplane_broker.domain.exceptions import InfrastructureError
from crossplane_broker.domain.models import Credentials, Endpoint
from crossplane_broker.providers.base import SECRET_KIND, ServiceBinder
from crossplane_broker.providers.credentials import ProxyCredentials, SecretCredentialExtractor


def redis_endpoints(proxy: ProxyCredentials) -> dict[str, Endpoint]:
    """
    Select the master and sentinel endpoints from the proxy ports.

    The master port is named "redis", older deployments name it "frontend".
    """
    port = proxy.find_port("redis")
    if port is None:
        port = proxy.find_port("frontend")
    if port is None:
        raise InfrastructureError("port not found", details={"port": "redis"})

    sentinel_port = proxy.find_port("sentinel")
    if sentinel_port is None:
        raise InfrastructureError("port not found", details={"port": "sentinel"})

    return {
        "master": Endpoint(host=proxy.host, port=port, protocol="tcp"),
        "sentinel": Endpoint(host=proxy.host, port=sentinel_port, protocol="tcp"),
    }


class RedisServiceBinder(ServiceBinder):
    """Every binding of a Redis instance shares the instance password."""

    def finish_provision(self) -> None:
        pass

    def bind(self, binding_id: str) -> Credentials:
        return self.get_binding(binding_id)

    def get_binding(self, binding_id: str) -> Credentials:
        secrets = self.instance.refs_of_kind(SECRET_KIND)
        if len(secrets) != 1:
            raise InfrastructureError(
                f"expected exactly one secret reference, found {len(secrets)}",
                details={"instance_id": self.instance.name},
            )
        ref = secrets[0]
        secret = SecretCredentialExtractor(
            self.control_plane, ref.name, ref.namespace or self.control_plane.namespace
        ).get_credentials()

        endpoints = redis_endpoints(self.proxy_credentials())
        master = endpoints["master"]
        sentinel = endpoints["sentinel"]
        return {
            "host": master.host,
            "hostname": master.host,
            "port": master.port,
            "master": f"redis://{self.instance.name}",
            "sentinels": [{"host": sentinel.host, "port": sentinel.port}],
            "servers": [{"host": master.host, "port": master.port}],
            "password": secret.password,
        }

    def unbind(self, binding_id: str) -> None:
        pass

    def endpoints(self) -> list[Endpoint]:
        return list(redis_endpoints(self.proxy_credentials()).values())

    def deprovision(self) -> None:
        self.mark_namespace_deleted()
