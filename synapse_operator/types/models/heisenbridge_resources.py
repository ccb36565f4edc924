class HeisenbridgeResources:
    """Encapsulates the naming scheme used for the resources which the operator
    manages for Heisenbridge resources."""

    CONFIG_FILE_NAME = "heisenbridge.yaml"
    HTTP_PORT = 9898

    @classmethod
    def component_name(self, name: str):
        return f"{name}-heisenbridge"

    @classmethod
    def config_map_name(self, name: str):
        return self.component_name(name)

    @classmethod
    def service_name(self, name: str):
        return self.component_name(name)

    @classmethod
    def deployment_name(self, name: str):
        return self.component_name(name)

    @classmethod
    def qualified_service_name(self, name: str, namespace: str):
        return f"{self.service_name(name)}.{namespace}.svc.cluster.local"

    @classmethod
    def url(self, name: str, namespace: str):
        return f"http://{self.qualified_service_name(name, namespace)}:{self.HTTP_PORT}"

    @classmethod
    def volume_mount_name(self, name: str):
        return f"heisenbridge-{name}"

    @classmethod
    def registration_mount_path(self, name: str):
        return f"/data-heisenbridge/{name}"
