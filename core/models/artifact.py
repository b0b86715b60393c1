# ============================================================================
# CONTAINER ARTIFACT MODEL
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Core model - Built image reference
# PURPOSE: Describe an image that has been built and pushed
# CREATED: 07 OCT 2026
# ============================================================================
"""Container Artifact"""

from dataclasses import dataclass

# Registry namespace prefix; the account id is appended per function
IMAGE_NAMESPACE = "mds-sf"


@dataclass(frozen=True)
class ContainerArtifact:
    """
    An image built for one function version.

    tag_prefix is lowercased and carries the registry host when one is
    configured, e.g. "10.0.0.5:5000/mds-sf-42/foo".
    """
    tag_prefix: str
    tag_version: str
    name: str

    @property
    def image(self) -> str:
        return f"{self.tag_prefix}:{self.tag_version}"

    @classmethod
    def for_function(
        cls,
        container_host: str,
        account_id: str,
        name: str,
        version: str,
    ) -> "ContainerArtifact":
        tag_prefix = f"{container_host}{IMAGE_NAMESPACE}-{account_id}/{name}".lower()
        return cls(tag_prefix=tag_prefix, tag_version=str(version), name=name)
