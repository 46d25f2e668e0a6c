"""Resource kinds the broker reads and writes."""

from dataclasses import dataclass

from crossplane_broker.domain.ports import ResourceKind

SECRET = ResourceKind("v1", "Secret")
NAMESPACE = ResourceKind("v1", "Namespace")
SERVICE = ResourceKind("v1", "Service")

MARIADB_USER_INSTANCE = ResourceKind("syn.tools/v1alpha1", "CompositeMariaDBUserInstance")
MARIADB_DATABASE_INSTANCE = ResourceKind("syn.tools/v1alpha1", "CompositeMariaDBDatabaseInstance")

# Composition used for binding composites of MariaDB databases
MARIADB_USER_COMPOSITION = "mariadb-user"


@dataclass(frozen=True)
class ControlPlaneKinds:
    """Kinds whose API version depends on the installed Crossplane and provider-helm."""

    composition: ResourceKind = ResourceKind("apiextensions.crossplane.io/v1", "Composition")
    composite_resource_definition: ResourceKind = ResourceKind(
        "apiextensions.crossplane.io/v1", "CompositeResourceDefinition"
    )
    helm_release: ResourceKind = ResourceKind("helm.crossplane.io/v1beta1", "Release")
    helm_provider_config: ResourceKind = ResourceKind("helm.crossplane.io/v1beta1", "ProviderConfig")
