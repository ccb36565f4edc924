class SynapseResources:
    """Encapsulates the naming scheme used for the resources which the operator
    manages for Synapse resources."""

    HOMESERVER_FILE_NAME = "homeserver.yaml"
    HTTP_PORT = 8008

    @classmethod
    def component_name(self, name: str):
        return name

    @classmethod
    def config_map_name(self, name: str):
        return name

    @classmethod
    def persistent_volume_claim_name(self, name: str):
        return name

    @classmethod
    def service_name(self, name: str):
        return name

    @classmethod
    def deployment_name(self, name: str):
        return name

    @classmethod
    def qualified_service_name(self, name: str, namespace: str):
        return f"{self.service_name(name)}.{namespace}.svc.cluster.local"

    @classmethod
    def url(self, name: str, namespace: str):
        return f"http://{self.qualified_service_name(name, namespace)}:{self.HTTP_PORT}"
