#!/usr/bin/python
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT

"""Kubernetes diagnostic checks as an Ansible module.

Runs the kube-flare checks against a cluster via kubeconfig from the Ansible
control node. The checks run concurrently, each reporting pass/fail with
details, and the module returns one result per check in a fixed order.

All API calls are read-only (list). Zero writes to the cluster.
"""

from __future__ import annotations

DOCUMENTATION = r"""
---
module: kube_flare_check
short_description: Run kube-flare diagnostic checks against a Kubernetes cluster
version_added: "1.0.0"
description:
  - Connects to a Kubernetes cluster via kubeconfig (or in-cluster service
    account) and runs independent diagnostic checks concurrently.
  - Checks cover control plane reachability, node readiness, node limit
    overcommit, services without endpoints, admission webhooks with a 'Fail'
    failure policy, warning events, kube-system pod health, cron job load and
    OOMKilled containers.
  - Completely read-only. All API calls are list operations.
options:
  kubeconfig:
    description: Path to the kubeconfig file. Falls back to in-cluster config.
    type: path
    default: ~/.kube/config
  context:
    description: Kubeconfig context to use. Defaults to current context.
    type: str
  namespace:
    description:
      - Limit the endpoints, events, cronjobs and oom-killed checks to one namespace.
      - Omit for all namespaces.
    type: str
  checks:
    description:
      - Checks to run. Omit to run all of them.
      - Available checks are control-plane, node-readiness, overcommit, service-endpoints,
        admission-webhooks, warning-events, infra-pods, cronjobs and oom-killed.
    type: list
    elements: str
  infra_namespace:
    description: Namespace inspected by the infra-pods check.
    type: str
    default: kube-system
  cronjob_active_threshold:
    description: A cron job with more active runs than this fails the cronjobs check.
    type: int
    default: 100
  timeout:
    description: Seconds to wait for all checks. Checks still running are reported as timed out.
    type: float
    default: 120
  request_timeout:
    description: Timeout in seconds for each Kubernetes API call.
    type: float
    default: 30
  max_workers:
    description: Maximum number of checks running at once. Defaults to one worker per check.
    type: int
requirements:
  - kubernetes (Python package)
  - kube_flare (Python package)
author:
  - kube-flare contributors
"""

EXAMPLES = r"""
- name: Run all checks against current context
  kube_flare_check:
  register: flare

- name: Check a specific cluster context
  kube_flare_check:
    kubeconfig: /etc/kubernetes/admin.conf
    context: prod-cluster
  register: flare

- name: Run only node checks with a short deadline
  kube_flare_check:
    checks:
      - node-readiness
      - overcommit
    timeout: 30
  register: flare

- name: Fail playbook if any check failed
  kube_flare_check:
  register: flare
  failed_when: flare.summary.failed > 0
"""

RETURN = r"""
results:
  description: One result per check, in check order.
  type: list
  returned: always
  elements: dict
  sample:
    - name: "node-readiness"
      passed: false
      status: "fail"
      details: "Node worker-2 is NotReady"
      error: null
      duration_ms: 41.3
summary:
  description: Overall outcome of the run.
  type: dict
  returned: always
  sample:
    cluster_name: "prod"
    context: "prod-admin"
    overall_health: "failing"
    total: 9
    passed: 8
    failed: 1
    degraded: 0
report_text:
  description: Human-readable text report.
  type: str
  returned: always
"""

ARGUMENT_SPEC = dict(
    kubeconfig=dict(type="path", default="~/.kube/config"),
    context=dict(type="str", default=None),
    namespace=dict(type="str", default=None),
    checks=dict(type="list", elements="str", default=None),
    infra_namespace=dict(type="str", default="kube-system"),
    cronjob_active_threshold=dict(type="int", default=100),
    timeout=dict(type="float", default=120),
    request_timeout=dict(type="float", default=30),
    max_workers=dict(type="int", default=None),
)


def execute(module, provider, cluster_name="unknown", context_name="unknown"):
    """Run the selected checks with ``provider`` and exit the module with the results."""
    from kube_flare import CheckRunner, default_registry, generate_report_text, summarize

    params = module.params
    if params["cronjob_active_threshold"] < 0:
        module.fail_json(msg="cronjob_active_threshold must not be negative")
        return

    registry = default_registry(
        namespace=params["namespace"],
        infra_namespace=params["infra_namespace"],
        cronjob_active_threshold=params["cronjob_active_threshold"],
    )
    try:
        if params["checks"] is not None:
            registry = registry.select(params["checks"])
        runner = CheckRunner(registry, timeout=params["timeout"], max_workers=params["max_workers"])
    except (KeyError, ValueError) as e:
        module.fail_json(msg=f"Invalid check configuration: {e}", available_checks=default_registry().names)
        return

    results = runner.run(provider)

    summary = {"cluster_name": cluster_name, "context": context_name}
    summary.update(summarize(results))

    module.exit_json(
        changed=False,
        summary=summary,
        results=[r.to_dict() for r in results],
        report_text=generate_report_text(results, cluster_name, context_name),
    )


def run_module():
    from ansible.module_utils.basic import AnsibleModule

    module = AnsibleModule(argument_spec=ARGUMENT_SPEC, supports_check_mode=True)

    # Verify required packages are available
    try:
        from kube_flare import ClusterConnectionError, KubernetesProvider
        from kube_flare.connection import build_api_client, describe_context
    except ImportError as e:
        module.fail_json(msg=f"The 'kube_flare' and 'kubernetes' Python packages are required: {e}")
        return

    kubeconfig = module.params["kubeconfig"]
    context = module.params["context"]

    # Connect to cluster
    try:
        api_client = build_api_client(kubeconfig, context)
    except ClusterConnectionError as e:
        module.fail_json(msg=f"Failed to connect to Kubernetes cluster: {e}")
        return

    cluster_name, context_name = describe_context(kubeconfig, context)
    provider = KubernetesProvider(api_client, request_timeout=module.params["request_timeout"])
    execute(module, provider, cluster_name, context_name)


def main():
    run_module()


if __name__ == "__main__":
    main()
