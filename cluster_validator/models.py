"""
Cluster validation data models

Enums and immutable records shared by the collectors, the classifier and the
report layer. Raw status strings are parsed once into closed enums with an
explicit UNKNOWN member; the raw text stays on the record for reporting.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


class Domain(str, Enum):
    """Resource domain being validated"""
    NAMESPACE = "namespace"
    HELM_RELEASE = "helm_release"
    DEPLOYMENT = "deployment"
    POD = "pod"
    KUSTOMIZATION = "kustomization"
    NODE = "node"
    INGRESS = "ingress"


class HealthStatus(str, Enum):
    """Three-way health verdict"""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    FAILED = "failed"


class EndpointStatus(str, Enum):
    """Endpoint probe verdict"""
    HEALTHY = "healthy"
    DNS_FAILED = "dns_failed"
    HTTP_FAILED = "http_failed"


class ServiceRole(str, Enum):
    """Well-known platform services shown in the delivery report"""
    PROMETHEUS = "prometheus"
    ALERTMANAGER = "alertmanager"
    GRAFANA = "grafana"
    DASHBOARD = "dashboard"
    THANOS = "thanos"
    KIALI = "kiali"
    VAULT = "vault"


class UnavailablePolicy(str, Enum):
    """How a domain whose retrieval failed is reported"""
    IGNORE = "ignore"
    WARN = "warn"
    FAIL = "fail"


# === Parsed status enums ===

class NamespacePhase(str, Enum):
    ACTIVE = "Active"
    TERMINATING = "Terminating"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "NamespacePhase":
        for member in cls:
            if member.value == raw:
                return member
        return cls.UNKNOWN


class HelmStatus(str, Enum):
    DEPLOYED = "deployed"
    FAILED = "failed"
    PENDING_INSTALL = "pending-install"
    PENDING_UPGRADE = "pending-upgrade"
    PENDING_ROLLBACK = "pending-rollback"
    SUPERSEDED = "superseded"
    UNINSTALLING = "uninstalling"
    UNINSTALLED = "uninstalled"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "HelmStatus":
        for member in cls:
            if member is not cls.UNKNOWN and member.value == raw:
                return member
        return cls.UNKNOWN


class PodPhase(str, Enum):
    """Pod display status as printed by kubectl, grouped by meaning"""
    RUNNING = "Running"
    COMPLETED = "Completed"
    PENDING = "Pending"
    FAILED = "Failed"
    CRASH_LOOP_BACK_OFF = "CrashLoopBackOff"
    IMAGE_PULL_BACK_OFF = "ImagePullBackOff"
    ERR_IMAGE_PULL = "ErrImagePull"
    INIT = "Init"
    ERROR = "Error"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "PodPhase":
        raw = raw or ""
        for member in (cls.RUNNING, cls.COMPLETED, cls.PENDING, cls.FAILED,
                       cls.CRASH_LOOP_BACK_OFF, cls.IMAGE_PULL_BACK_OFF,
                       cls.ERR_IMAGE_PULL):
            if raw == member.value:
                return member
        if raw.startswith("Init:"):
            return cls.INIT
        # Error, ContainerStatusUnknown errors, Evicted
        if "Error" in raw or "Evicted" in raw:
            return cls.ERROR
        return cls.UNKNOWN


POD_FAILURE_PHASES = (
    PodPhase.FAILED,
    PodPhase.CRASH_LOOP_BACK_OFF,
    PodPhase.IMAGE_PULL_BACK_OFF,
    PodPhase.ERR_IMAGE_PULL,
)


# === Resource records ===

@dataclass(frozen=True)
class ResourceKey:
    """Identity of a record: (domain, namespace, name)"""
    domain: Domain
    namespace: Optional[str]
    name: str

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.namespace}/{self.name}"
        return self.name


@dataclass(frozen=True)
class NamespaceRecord:
    name: str
    phase: str

    @property
    def key(self) -> ResourceKey:
        return ResourceKey(Domain.NAMESPACE, None, self.name)


@dataclass(frozen=True)
class HelmReleaseRecord:
    namespace: str
    name: str
    status: str

    @property
    def key(self) -> ResourceKey:
        return ResourceKey(Domain.HELM_RELEASE, self.namespace, self.name)


@dataclass(frozen=True)
class DeploymentRecord:
    namespace: str
    name: str
    ready_replicas: int
    desired_replicas: int
    updated_replicas: int = 0
    available_replicas: int = 0

    @property
    def key(self) -> ResourceKey:
        return ResourceKey(Domain.DEPLOYMENT, self.namespace, self.name)


@dataclass(frozen=True)
class PodRecord:
    namespace: str
    name: str
    phase: str
    ready_containers: int = 0
    total_containers: int = 0
    restart_count: int = 0

    @property
    def key(self) -> ResourceKey:
        return ResourceKey(Domain.POD, self.namespace, self.name)


@dataclass(frozen=True)
class KustomizationRecord:
    namespace: str
    name: str
    ready: Optional[str] = None
    message: str = ""

    @property
    def key(self) -> ResourceKey:
        return ResourceKey(Domain.KUSTOMIZATION, self.namespace, self.name)


@dataclass(frozen=True)
class NodeRecord:
    name: str
    condition: str
    roles: str = "<none>"
    kubelet_version: str = ""

    @property
    def key(self) -> ResourceKey:
        return ResourceKey(Domain.NODE, None, self.name)


@dataclass(frozen=True)
class IngressRule:
    host: Optional[str]
    # None: the rule declares no http paths at all
    paths: Optional[Tuple[str, ...]] = None


@dataclass(frozen=True)
class IngressRecord:
    namespace: str
    name: str
    rules: Tuple[IngressRule, ...] = ()

    @property
    def key(self) -> ResourceKey:
        return ResourceKey(Domain.INGRESS, self.namespace, self.name)


@dataclass(frozen=True)
class ClusterIdentity:
    name: str = "unknown"
    version: str = "unknown"


# === Classification results ===

@dataclass(frozen=True)
class HealthVerdict:
    """Classification of one record"""
    status: HealthStatus
    reason: str = ""

    @property
    def healthy(self) -> bool:
        return self.status is HealthStatus.HEALTHY


@dataclass(frozen=True)
class Issue:
    """One non-healthy resource

    Attributes:
        key: identity of the resource
        status: DEGRADED or FAILED
        reason: verdict reason
        subject: display prefix (defaults to "ns/name")
    """
    key: ResourceKey
    status: HealthStatus
    reason: str
    subject: Optional[str] = None

    def describe(self) -> str:
        return f"{self.subject or self.key}: {self.reason}"


@dataclass(frozen=True)
class DomainResult:
    """Counters and issues of one domain

    healthy + len(issues) == total always holds; the issue statuses split
    the non-healthy part into degraded and failed.
    """
    domain: Domain
    total: int = 0
    healthy: int = 0
    issues: Tuple[Issue, ...] = ()
    available: bool = True
    error: Optional[str] = None

    @classmethod
    def unavailable(cls, domain: Domain, error: str) -> "DomainResult":
        return cls(domain=domain, available=False, error=error)

    @property
    def issue_count(self) -> int:
        return len(self.issues)

    @property
    def failed(self) -> int:
        return sum(1 for i in self.issues if i.status is HealthStatus.FAILED)

    @property
    def degraded(self) -> int:
        return sum(1 for i in self.issues if i.status is HealthStatus.DEGRADED)

    # pod vocabulary: running / failed / pending
    @property
    def running(self) -> int:
        return self.healthy

    @property
    def pending(self) -> int:
        return self.degraded


# === Endpoints ===

@dataclass(frozen=True)
class EndpointCandidate:
    namespace: str
    ingress_name: str
    host: str
    path: str = "/"

    @property
    def url(self) -> str:
        # no scheme inference: always https
        return f"https://{self.host}{self.path}"


@dataclass(frozen=True)
class EndpointResult:
    url: str
    status: EndpointStatus
    status_code: Optional[int] = None
    error: Optional[str] = None
    candidate: Optional[EndpointCandidate] = field(default=None, compare=False)

    @property
    def host(self) -> str:
        if self.candidate is not None:
            return self.candidate.host
        rest = self.url.split("://", 1)[-1]
        return rest.split("/", 1)[0]

    @property
    def healthy(self) -> bool:
        return self.status is EndpointStatus.HEALTHY


# report display order of discovered services
SERVICE_ROLES: List[ServiceRole] = [
    ServiceRole.PROMETHEUS,
    ServiceRole.ALERTMANAGER,
    ServiceRole.GRAFANA,
    ServiceRole.DASHBOARD,
    ServiceRole.THANOS,
    ServiceRole.KIALI,
    ServiceRole.VAULT,
]

SERVICE_LABELS: Dict[ServiceRole, str] = {
    ServiceRole.PROMETHEUS: "Prometheus URL",
    ServiceRole.ALERTMANAGER: "Alert Manager URL",
    ServiceRole.GRAFANA: "Grafana URL",
    ServiceRole.DASHBOARD: "Dashboard URL",
    ServiceRole.THANOS: "Thanos URL",
    ServiceRole.KIALI: "Kiali URL",
    ServiceRole.VAULT: "Vault URL",
}

NOT_FOUND = "(Not configured or not found)"
TO_BE_CONFIGURED = "(To be configured)"

ISTIO_NAMESPACE = "istio-system"
