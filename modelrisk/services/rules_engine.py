"""Rules engine that assigns a risk tier and evidence list to a use case.

The engine is pure: it reads a flattened view of the use case and the
rule set / artifact catalog, and returns a plain dict with the fields of a
Decision. Persisting that dict is the caller's job.
"""

import logging
from types import SimpleNamespace
from typing import Any

from modelrisk.services.config_loader import load_artifacts_config, load_rules_config

logger = logging.getLogger(__name__)

USE_CASE_FIELDS = (
    "title",
    "business_line",
    "description",
    "ai_type",
    "usage_type",
    "human_in_loop",
    "customer_impact",
    "regulatory_domains",
    "deployment",
    "vendor_involved",
    "vendor_name",
    "intended_users",
    "downstream_decisions",
    "contains_pii",
    "contains_npi",
    "sensitive_attributes_used",
    "training_data_source",
    "retention_policy_defined",
    "access_controls_defined",
    "model_definition_trigger",
    "explainability_required",
    "change_frequency",
    "retraining",
    "fallback_plan_defined",
    "monitoring_cadence",
)

# Artifacts only evidenced by an uploaded document
ATTACHMENT_BASED_ARTIFACTS = frozenset({
    "ValidationPlan",
    "ModelCard",
    "FairnessAssessment",
    "BiasTestingResults",
    "LLMEvalSuite",
    "GuardrailsDesign",
    "HallucinationTestResults",
    "PromptInjectionTests",
})


def _has_monitoring(data: dict[str, Any]) -> bool:
    cadence = data.get("monitoring_cadence")
    return bool(cadence) and cadence != "None"


EVIDENCE_CHECKS = {
    "DataRetentionPolicy": lambda data: data.get("retention_policy_defined") is True,
    "AccessControlMatrix": lambda data: data.get("access_controls_defined") is True,
    "FallbackProcedure": lambda data: data.get("fallback_plan_defined") is True,
    "MonitoringPlan": _has_monitoring,
    "BasicMonitoringPlan": _has_monitoring,
    "VendorDueDiligence": lambda data: (
        not data.get("vendor_involved") or "Vendor doc" in data.get("attachment_types", [])
    ),
}


def flatten_use_case(use_case: Any) -> dict[str, Any]:
    """
    Build the flat field map rules are evaluated against.

    Args:
        use_case: UseCase ORM instance (or any object with the same attributes)

    Returns:
        Dict of intake fields plus ``status``, ``has_attachments`` and
        ``attachment_types``.
    """
    data = {field: getattr(use_case, field, None) for field in USE_CASE_FIELDS}
    data["regulatory_domains"] = data["regulatory_domains"] or []

    status = getattr(use_case, "status", None)
    data["status"] = getattr(status, "value", status)

    attachments = getattr(use_case, "attachments", None) or []
    data["has_attachments"] = len(attachments) > 0
    data["attachment_types"] = [a.type for a in attachments]
    return data


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def evaluate_condition(condition: dict[str, Any], data: dict[str, Any]) -> bool:
    """
    Evaluate one condition tree against the flattened use case.

    ``all`` and ``any`` nest other conditions; leaf conditions name a
    ``field``, an ``operator`` and usually a ``value``. Unknown operators and
    malformed leaves evaluate to False.
    """
    if "all" in condition:
        return all(evaluate_condition(sub, data) for sub in condition["all"])

    if "any" in condition:
        return any(evaluate_condition(sub, data) for sub in condition["any"])

    field = condition.get("field")
    operator = condition.get("operator")
    if not field or not operator:
        return False

    field_value = data.get(field)
    target = condition.get("value")

    if operator == "eq":
        return field_value == target
    if operator == "neq":
        return field_value != target
    if operator == "in":
        return isinstance(target, list) and field_value in target
    if operator == "notIn":
        return not isinstance(target, list) or field_value not in target
    if operator == "contains":
        if isinstance(field_value, (list, str)):
            return target in field_value
        return False
    if operator == "notEmpty":
        if isinstance(field_value, (list, dict)):
            return len(field_value) > 0
        if isinstance(field_value, str):
            return len(field_value.strip()) > 0
        return field_value is not None
    if operator in ("gt", "lt", "gte", "lte"):
        if not _is_number(field_value) or not _is_number(target):
            return False
        if operator == "gt":
            return field_value > target
        if operator == "lt":
            return field_value < target
        if operator == "gte":
            return field_value >= target
        return field_value <= target

    logger.warning(f"Unknown rule operator: {operator}")
    return False


def resolve_tier(
    triggered_rules: list[dict[str, Any]],
    tiers: dict[str, Any],
    default_tier: str,
) -> str:
    """Return the highest-severity tier among triggered rules, starting at the default."""
    resolved = default_tier
    max_severity = tiers[default_tier]["severity"]

    for rule in triggered_rules:
        tier_def = tiers.get(rule["tier"])
        if tier_def and tier_def["severity"] > max_severity:
            max_severity = tier_def["severity"]
            resolved = rule["tier"]

    return resolved


def determine_is_model(data: dict[str, Any], criteria: list[dict[str, Any]]) -> str:
    """First matching ``Yes`` criterion wins; otherwise ``Model-like`` if any matched."""
    is_model = "No"
    for criterion in criteria:
        if evaluate_condition(criterion.get("conditions", {}), data):
            if criterion.get("result") == "Yes":
                return "Yes"
            if criterion.get("result") == "Model-like":
                is_model = "Model-like"
    return is_model


def collect_required_artifacts(
    triggered_rules: list[dict[str, Any]],
    tier: str,
    artifacts: dict[str, Any],
) -> list[str]:
    required: dict[str, None] = {}

    for rule in triggered_rules:
        for artifact_id in rule.get("effects", {}).get("addRequiredArtifacts") or []:
            required[artifact_id] = None

    for artifact in artifacts.values():
        if tier in (artifact.get("requiredForTiers") or []):
            required[artifact["id"]] = None

    return list(required)


def collect_risk_flags(triggered_rules: list[dict[str, Any]]) -> list[str]:
    flags: dict[str, None] = {}
    for rule in triggered_rules:
        for flag in rule.get("effects", {}).get("addRiskFlags") or []:
            flags[flag] = None
    return list(flags)


def detect_missing_evidence(
    data: dict[str, Any],
    required_artifacts: list[str],
    artifacts: dict[str, Any],
) -> list[str]:
    """Required artifacts the intake answers or attachments do not yet cover."""
    missing: dict[str, None] = {}

    for artifact_id in required_artifacts:
        if artifact_id not in artifacts:
            continue

        check = EVIDENCE_CHECKS.get(artifact_id)
        if check and not check(data):
            missing[artifact_id] = None

        if artifact_id in ATTACHMENT_BASED_ARTIFACTS and not data["has_attachments"]:
            missing[artifact_id] = None

    return list(missing)


def generate_rationale(
    tier: str,
    is_model: str,
    triggered_rules: list[dict[str, Any]],
    risk_flags: list[str],
    tiers: dict[str, Any],
) -> str:
    tier_def = tiers[tier]
    parts: list[str] = []

    if is_model == "Yes":
        parts.append("This use case qualifies as a model under MRM policy.")
    elif is_model == "Model-like":
        parts.append(
            "This use case exhibits model-like characteristics and requires enhanced oversight."
        )
    else:
        parts.append("This use case does not meet the model definition criteria.")

    parts.append(
        f"Risk tier assigned: {tier} ({tier_def['name']}) - {tier_def['description']}."
    )

    if triggered_rules:
        parts.append("Triggered criteria:")
        for rule in triggered_rules:
            parts.append(f"- {rule.get('effects', {}).get('triggeredCriteria', rule.get('name'))}")

    if risk_flags:
        parts.append(f"Risk flags identified: {', '.join(risk_flags)}.")

    return "\n".join(parts)


def evaluate_use_case(
    use_case: Any,
    rules_config: dict[str, Any] | None = None,
    artifacts_config: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Evaluate a use case against the rule set.

    Args:
        use_case: UseCase instance to evaluate
        rules_config: Rule set override (defaults to the loaded rules.yaml)
        artifacts_config: Catalog override (defaults to the loaded artifacts.yaml)

    Returns:
        Dict with is_model, tier, triggered_rules, rationale_summary,
        required_artifacts, missing_evidence and risk_flags.
    """
    rules_config = rules_config if rules_config is not None else load_rules_config()
    artifacts_config = artifacts_config if artifacts_config is not None else load_artifacts_config()

    tiers = rules_config["tiers"]
    artifacts = artifacts_config.get("artifacts") or {}
    data = flatten_use_case(use_case)

    triggered = [
        rule for rule in rules_config.get("rules") or []
        if evaluate_condition(rule.get("conditions", {}), data)
    ]

    tier = resolve_tier(triggered, tiers, rules_config["defaultTier"])
    is_model = determine_is_model(data, rules_config.get("modelDefinitionCriteria") or [])
    risk_flags = collect_risk_flags(triggered)
    required_artifacts = collect_required_artifacts(triggered, tier, artifacts)
    missing_evidence = detect_missing_evidence(data, required_artifacts, artifacts)

    logger.debug(
        f"Evaluated use case {getattr(use_case, 'id', None)}: tier={tier}, "
        f"is_model={is_model}, triggered={[r['id'] for r in triggered]}"
    )

    return {
        "is_model": is_model,
        "tier": tier,
        "triggered_rules": [
            {
                "id": rule["id"],
                "name": rule.get("name"),
                "tier": rule["tier"],
                "triggered_criteria": rule.get("effects", {}).get("triggeredCriteria"),
            }
            for rule in triggered
        ],
        "rationale_summary": generate_rationale(tier, is_model, triggered, risk_flags, tiers),
        "required_artifacts": required_artifacts,
        "missing_evidence": missing_evidence,
        "risk_flags": risk_flags,
    }


def get_artifact_details(
    artifact_ids: list[str],
    artifacts_config: dict[str, Any] | None = None,
) -> list[dict[str, Any]]:
    """Return catalog entries for the given ids, skipping unknown ones."""
    artifacts_config = artifacts_config if artifacts_config is not None else load_artifacts_config()
    artifacts = artifacts_config.get("artifacts") or {}
    return [artifacts[artifact_id] for artifact_id in artifact_ids if artifact_id in artifacts]


def preview_tier(
    fields: dict[str, Any],
    rules_config: dict[str, Any] | None = None,
    artifacts_config: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Evaluate unsaved intake answers for a live tier preview.

    The answers are treated as a use case with no status and no
    attachments. Required artifacts come back as full catalog entries.
    """
    rules_config = rules_config if rules_config is not None else load_rules_config()
    artifacts_config = artifacts_config if artifacts_config is not None else load_artifacts_config()

    candidate = SimpleNamespace(
        **{field: fields.get(field) for field in USE_CASE_FIELDS},
        status=None,
        attachments=[],
    )
    result = evaluate_use_case(candidate, rules_config, artifacts_config)
    tier_info = rules_config["tiers"].get(result["tier"]) or {}

    return {
        "tier": result["tier"],
        "tier_info": {
            "name": tier_info.get("name"),
            "description": tier_info.get("description"),
            "color": tier_info.get("color"),
        },
        "is_model": result["is_model"],
        "triggered_rules": result["triggered_rules"],
        "required_artifacts": get_artifact_details(result["required_artifacts"], artifacts_config),
        "risk_flags": result["risk_flags"],
        "is_preview": True,
    }
