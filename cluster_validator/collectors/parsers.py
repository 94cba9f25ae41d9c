"""
Record parsers

Turn kubectl/helm JSON objects and flat fixture dicts into immutable
resource records. Missing fields default to conservative values; nothing
here raises on odd input except for non-numeric counters in fixtures.
"""

import re
from typing import Any, Dict, List, Optional, Tuple

from ..models import (
    ClusterIdentity,
    DeploymentRecord,
    HelmReleaseRecord,
    IngressRecord,
    IngressRule,
    KustomizationRecord,
    NamespaceRecord,
    NodeRecord,
    PodRecord,
)

_VERSION_RE = re.compile(r"\d+\.\d+\.\d+")


def _metadata(obj: Dict) -> Dict:
    return obj.get("metadata") or {}


def _status(obj: Dict) -> Dict:
    return obj.get("status") or {}


def _int(value: Any, default: int = 0) -> int:
    if value is None or value == "":
        return default
    return int(value)


def parse_ready_fraction(value: Any) -> Tuple[int, int]:
    """Parse kubectl "READY" column text such as "1/2"

    Returns:
        (ready, total); a bare number is read as (n, n)
    """
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return _int(value[0]), _int(value[1])

    text = str(value).strip()
    if "/" in text:
        ready, total = text.split("/", 1)
        return _int(ready), _int(total)
    n = _int(text)
    return n, n


def strip_version_prefix(version: Optional[str]) -> Optional[str]:
    if not version:
        return version
    return version[1:] if version.startswith("v") else version


def extract_semver(text: str) -> Optional[str]:
    """First x.y.z in free text (pilot-discovery output, image tags)"""
    match = _VERSION_RE.search(text or "")
    return match.group(0) if match else None


# === kubectl / helm JSON ===

def parse_namespace(obj: Dict) -> NamespaceRecord:
    return NamespaceRecord(
        name=_metadata(obj).get("name", ""),
        phase=_status(obj).get("phase") or "Unknown",
    )


def parse_helm_release(item: Dict) -> HelmReleaseRecord:
    return HelmReleaseRecord(
        namespace=item.get("namespace", ""),
        name=item.get("name", ""),
        status=item.get("status") or "unknown",
    )


def parse_deployment(obj: Dict) -> DeploymentRecord:
    meta = _metadata(obj)
    spec = obj.get("spec") or {}
    status = _status(obj)
    return DeploymentRecord(
        namespace=meta.get("namespace", ""),
        name=meta.get("name", ""),
        ready_replicas=_int(status.get("readyReplicas")),
        # the API omits replicas only when it is the default of 1
        desired_replicas=_int(spec.get("replicas"), default=1),
        updated_replicas=_int(status.get("updatedReplicas")),
        available_replicas=_int(status.get("availableReplicas")),
    )


def _terminated_reason(terminated: Dict) -> str:
    if terminated.get("reason"):
        return terminated["reason"]
    if terminated.get("signal"):
        return f"Signal:{terminated['signal']}"
    return f"ExitCode:{terminated.get('exitCode', 0)}"


def pod_display_status(obj: Dict) -> str:
    """Status text kubectl prints in the STATUS column

    Follows kubectl's printer: pod reason/phase, then init container
    progress, then the most relevant container waiting/terminated reason,
    then Terminating for pods being deleted.
    """
    status = _status(obj)
    spec = obj.get("spec") or {}
    phase = status.get("phase") or "Unknown"
    reason = status.get("reason") or phase
    if phase == "Succeeded" and not status.get("reason"):
        reason = "Completed"

    initializing = False
    init_statuses = status.get("initContainerStatuses") or []
    init_total = len(spec.get("initContainers") or init_statuses)
    for index, container in enumerate(init_statuses):
        state = container.get("state") or {}
        terminated = state.get("terminated")
        waiting = state.get("waiting")
        if terminated and terminated.get("exitCode", 0) == 0:
            continue
        if terminated:
            reason = f"Init:{_terminated_reason(terminated)}"
        elif waiting and waiting.get("reason") and waiting["reason"] != "PodInitializing":
            reason = f"Init:{waiting['reason']}"
        else:
            reason = f"Init:{index}/{init_total}"
        initializing = True
        break

    if not initializing:
        has_running = False
        for container in reversed(status.get("containerStatuses") or []):
            state = container.get("state") or {}
            waiting = state.get("waiting")
            terminated = state.get("terminated")
            if waiting and waiting.get("reason"):
                reason = waiting["reason"]
            elif terminated:
                reason = _terminated_reason(terminated)
            elif state.get("running") and container.get("ready"):
                has_running = True

        if reason == "Completed" and has_running:
            reason = "Running"

    if _metadata(obj).get("deletionTimestamp"):
        reason = "Unknown" if status.get("reason") == "NodeLost" else "Terminating"

    return reason


def parse_pod(obj: Dict) -> PodRecord:
    meta = _metadata(obj)
    statuses = _status(obj).get("containerStatuses") or []
    spec_containers = (obj.get("spec") or {}).get("containers") or []
    return PodRecord(
        namespace=meta.get("namespace", ""),
        name=meta.get("name", ""),
        phase=pod_display_status(obj),
        ready_containers=sum(1 for c in statuses if c.get("ready")),
        total_containers=len(spec_containers) or len(statuses),
        restart_count=sum(_int(c.get("restartCount")) for c in statuses),
    )


def _condition(obj: Dict, condition_type: str) -> Optional[Dict]:
    for condition in _status(obj).get("conditions") or []:
        if condition.get("type") == condition_type:
            return condition
    return None


def parse_kustomization(obj: Dict) -> KustomizationRecord:
    meta = _metadata(obj)
    ready = _condition(obj, "Ready") or {}
    return KustomizationRecord(
        namespace=meta.get("namespace", ""),
        name=meta.get("name", ""),
        ready=ready.get("status"),
        message=ready.get("message", ""),
    )


def node_roles(labels: Dict[str, str]) -> str:
    roles = set()
    for label, value in (labels or {}).items():
        if label.startswith("node-role.kubernetes.io/"):
            role = label.split("/", 1)[1]
            if role:
                roles.add(role)
        elif label == "kubernetes.io/role" and value:
            roles.add(value)
    return ",".join(sorted(roles)) if roles else "<none>"


def parse_node(obj: Dict) -> NodeRecord:
    meta = _metadata(obj)
    ready = _condition(obj, "Ready")
    if ready is None:
        condition = "Unknown"
    elif ready.get("status") == "True":
        condition = "Ready"
    elif ready.get("status") == "False":
        condition = "NotReady"
    else:
        condition = "Unknown"

    if (obj.get("spec") or {}).get("unschedulable"):
        condition += ",SchedulingDisabled"

    node_info = _status(obj).get("nodeInfo") or {}
    return NodeRecord(
        name=meta.get("name", ""),
        condition=condition,
        roles=node_roles(meta.get("labels") or {}),
        kubelet_version=node_info.get("kubeletVersion", ""),
    )


def parse_ingress(obj: Dict) -> IngressRecord:
    meta = _metadata(obj)
    rules: List[IngressRule] = []
    for rule in (obj.get("spec") or {}).get("rules") or []:
        http = rule.get("http") or {}
        raw_paths = http.get("paths")
        paths = None
        if raw_paths:
            paths = tuple(p.get("path") or "/" for p in raw_paths)
        rules.append(IngressRule(host=rule.get("host"), paths=paths))
    return IngressRecord(
        namespace=meta.get("namespace", ""),
        name=meta.get("name", ""),
        rules=tuple(rules),
    )


def parse_server_version(data: Dict) -> Optional[str]:
    """Server version from `kubectl version -o json`"""
    server = (data or {}).get("serverVersion") or {}
    return strip_version_prefix(server.get("gitVersion"))


# === flat fixture dicts ===

def namespace_from_fixture(data: Dict) -> NamespaceRecord:
    return NamespaceRecord(name=data["name"], phase=data.get("phase") or "Unknown")


def helm_release_from_fixture(data: Dict) -> HelmReleaseRecord:
    return HelmReleaseRecord(
        namespace=data.get("namespace", "default"),
        name=data["name"],
        status=data.get("status") or "unknown",
    )


def deployment_from_fixture(data: Dict) -> DeploymentRecord:
    if "ready" in data:
        ready, desired = parse_ready_fraction(data["ready"])
    else:
        ready = _int(data.get("ready_replicas"))
        desired = _int(data.get("desired_replicas"))
    available = _int(data.get("available", data.get("available_replicas")))
    updated = _int(data.get("up_to_date", data.get("updated_replicas")), default=available)
    return DeploymentRecord(
        namespace=data.get("namespace", "default"),
        name=data["name"],
        ready_replicas=ready,
        desired_replicas=desired,
        updated_replicas=updated,
        available_replicas=available,
    )


def pod_from_fixture(data: Dict) -> PodRecord:
    if "ready" in data:
        ready, total = parse_ready_fraction(data["ready"])
    else:
        ready = _int(data.get("ready_containers"))
        total = _int(data.get("total_containers"))
    return PodRecord(
        namespace=data.get("namespace", "default"),
        name=data["name"],
        phase=data.get("phase") or data.get("status") or "Unknown",
        ready_containers=ready,
        total_containers=total,
        restart_count=_int(data.get("restarts", data.get("restart_count"))),
    )


def kustomization_from_fixture(data: Dict) -> KustomizationRecord:
    ready = data.get("ready")
    # YAML turns a bare True into a bool
    if isinstance(ready, bool):
        ready = "True" if ready else "False"
    return KustomizationRecord(
        namespace=data.get("namespace", "flux-system"),
        name=data["name"],
        ready=ready,
        message=data.get("message", ""),
    )


def node_from_fixture(data: Dict) -> NodeRecord:
    return NodeRecord(
        name=data["name"],
        condition=data.get("condition") or data.get("status") or "Unknown",
        roles=data.get("roles", "<none>"),
        kubelet_version=data.get("version", data.get("kubelet_version", "")),
    )


def ingress_from_fixture(data: Dict) -> IngressRecord:
    rules = []
    for rule in data.get("rules") or []:
        paths = rule.get("paths")
        rules.append(IngressRule(
            host=rule.get("host"),
            paths=tuple(paths) if paths else None,
        ))
    return IngressRecord(
        namespace=data.get("namespace", "default"),
        name=data["name"],
        rules=tuple(rules),
    )


def identity_from_fixture(data: Optional[Dict]) -> ClusterIdentity:
    data = data or {}
    return ClusterIdentity(
        name=str(data.get("name") or "unknown"),
        version=strip_version_prefix(str(data.get("version") or "unknown")),
    )
