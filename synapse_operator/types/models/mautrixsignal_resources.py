class MautrixSignalResources:
    """Encapsulates the naming scheme used for the resources which the operator
    manages for MautrixSignal resources."""

    CONFIG_FILE_NAME = "config.yaml"
    REGISTRATION_FILE_NAME = "registration.yaml"
    HTTP_PORT = 29328

    @classmethod
    def component_name(self, name: str):
        return f"{name}-mautrixsignal"

    @classmethod
    def config_map_name(self, name: str):
        return self.component_name(name)

    @classmethod
    def persistent_volume_claim_name(self, name: str):
        return self.component_name(name)

    @classmethod
    def service_name(self, name: str):
        return self.component_name(name)

    @classmethod
    def deployment_name(self, name: str):
        return self.component_name(name)

    @classmethod
    def signald_name(self, name: str):
        return f"{name}-signald"

    @classmethod
    def qualified_service_name(self, name: str, namespace: str):
        return f"{self.service_name(name)}.{namespace}.svc.cluster.local"

    @classmethod
    def url(self, name: str, namespace: str):
        return f"http://{self.qualified_service_name(name, namespace)}:{self.HTTP_PORT}"

    @classmethod
    def volume_mount_name(self, name: str):
        return f"mautrixsignal-{name}"

    @classmethod
    def registration_mount_path(self, name: str):
        return f"/data-mautrixsignal/{name}"
