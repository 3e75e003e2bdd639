import json
import logging
import os

from config.settings import DEFAULT_SOURCE_PRIORITY

_SOURCE_NUMBER_FIELDS = {
    "match_threshold": (0.0, 1.0),
    "reset_seconds": (0.0, None),
    "initial_delay_ms": (0.0, None),
    "timeout_ms": (1.0, None),
}
_SOURCE_INT_FIELDS = {
    "failure_threshold": 1,
    "retries": 1,
}


def load_config(path):
    with open(path, "r") as f:
        return json.load(f)


def load_config_or_default(path):
    """Return the parsed config, or ``{}`` when the file is missing or invalid."""
    if not path or not os.path.exists(path):
        return {}
    try:
        config = load_config(path)
    except (OSError, ValueError):
        logging.exception("Config load failed for %s", path)
        return {}
    errors = validate_config(config)
    if errors:
        for error in errors:
            logging.error("Config error: %s", error)
        return {}
    return config


def _check_number(errors, label, value, lower, upper):
    if isinstance(value, bool):
        errors.append(f"{label} must be a number")
        return
    try:
        number = float(value)
    except (TypeError, ValueError):
        errors.append(f"{label} must be a number")
        return
    if lower is not None and number < lower:
        errors.append(f"{label} must be >= {lower:g}")
    if upper is not None and number > upper:
        errors.append(f"{label} must be <= {upper:g}")


def validate_config(config):
    errors = []
    if not isinstance(config, dict):
        return ["config must be a JSON object"]

    section = config.get("score_sources")
    if section is None:
        return errors
    if not isinstance(section, dict):
        return ["score_sources must be an object"]

    priority = section.get("priority")
    if priority is not None:
        if not isinstance(priority, list):
            errors.append("score_sources.priority must be a list")
        else:
            for idx, name in enumerate(priority):
                if name not in DEFAULT_SOURCE_PRIORITY:
                    errors.append(
                        f"score_sources.priority[{idx}] must be one of {', '.join(DEFAULT_SOURCE_PRIORITY)}"
                    )
            if len(set(priority)) != len(priority):
                errors.append("score_sources.priority must not repeat a source")

    deadline = section.get("deadline_seconds")
    if deadline is not None:
        _check_number(errors, "score_sources.deadline_seconds", deadline, 0.0, None)

    check_store_first = section.get("check_store_first")
    if check_store_first is not None and not isinstance(check_store_first, bool):
        errors.append("score_sources.check_store_first must be true/false")

    user_agent = section.get("user_agent")
    if user_agent is not None and (not isinstance(user_agent, str) or not user_agent.strip()):
        errors.append("score_sources.user_agent must be a non-empty string")

    sources = section.get("sources")
    if sources is None:
        return errors
    if not isinstance(sources, dict):
        errors.append("score_sources.sources must be an object")
        return errors
    for name, entry in sources.items():
        label = f"score_sources.sources.{name}"
        if name not in DEFAULT_SOURCE_PRIORITY:
            errors.append(f"{label} is not a known source")
            continue
        if not isinstance(entry, dict):
            errors.append(f"{label} must be an object")
            continue
        enabled = entry.get("enabled")
        if enabled is not None and not isinstance(enabled, bool):
            errors.append(f"{label}.enabled must be true/false")
        for field, (lower, upper) in _SOURCE_NUMBER_FIELDS.items():
            if entry.get(field) is not None:
                _check_number(errors, f"{label}.{field}", entry[field], lower, upper)
        for field, minimum in _SOURCE_INT_FIELDS.items():
            value = entry.get(field)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, int):
                errors.append(f"{label}.{field} must be an integer")
            elif value < minimum:
                errors.append(f"{label}.{field} must be >= {minimum}")
    return errors
