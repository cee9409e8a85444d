"""
Keyword rule lists for Fleet NL2SQL.

Both the natural-language SQL templates and the mock engine's view routing are
ordered lists of keyword rules loaded from YAML. A rule holds keyword groups:
it matches when every group has at least one keyword occurring in the
lowercased text. A rule with no groups always matches and must come last.
"""
import logging
import os
from typing import List, Optional, Sequence

import yaml
from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

# Get the absolute path to the services directory
SERVICES_DIR = os.path.dirname(os.path.abspath(__file__))


class KeywordRule(BaseModel):
    """One prioritised (predicate, target) pair."""
    model_config = ConfigDict(frozen=True)

    name: str
    keywords: List[List[str]] = Field(default_factory=list)
    target: str
    description: str = ""

    @property
    def is_catch_all(self) -> bool:
        return not self.keywords

    def matches(self, text: str) -> bool:
        text = text.lower()
        return all(any(k.lower() in text for k in group) for group in self.keywords)


def load_yaml_config(filename: str, required_key: Optional[str] = None):
    """Load a YAML configuration file from the services directory."""
    filepath = os.path.join(SERVICES_DIR, filename)
    try:
        with open(filepath, "r", encoding="utf-8") as file:
            config = yaml.safe_load(file)
    except FileNotFoundError:
        raise ValueError(f"Configuration file not found: {filename}")
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {filename}: {str(e)}")
    if config is None:
        raise ValueError(f"Empty configuration file: {filename}")
    if required_key and required_key not in config:
        raise ValueError(f"Missing required key '{required_key}' in {filename}")
    return config[required_key] if required_key else config


def load_rules(filename: str, target_field: str) -> List[KeywordRule]:
    """
    Load an ordered rule list.

    Args:
        filename: YAML file in the services directory with a top-level 'rules' list
        target_field: Name of the per-rule key holding the rule's target

    Returns:
        Rules in priority order

    Raises:
        ValueError: If the file is malformed or the catch-all rule is missing or not last
    """
    raw_rules = load_yaml_config(filename, "rules")
    if not isinstance(raw_rules, list) or not raw_rules:
        raise ValueError(f"'rules' in {filename} must be a non-empty list")

    rules = []
    for item in raw_rules:
        if not isinstance(item, dict) or "name" not in item:
            raise ValueError(f"Every rule in {filename} must be a mapping with a 'name'")
        if target_field not in item:
            raise ValueError(f"Rule '{item.get('name')}' in {filename} has no '{target_field}'")
        rules.append(KeywordRule(
            name=item["name"],
            keywords=item.get("keywords") or [],
            target=item[target_field].strip(),
            description=item.get("description", ""),
        ))

    catch_alls = [i for i, rule in enumerate(rules) if rule.is_catch_all]
    if catch_alls != [len(rules) - 1]:
        raise ValueError(f"{filename} must end with exactly one catch-all rule")

    logger.debug("Loaded %d rules from %s", len(rules), filename)
    return rules


def first_match(rules: Sequence[KeywordRule], text: str) -> KeywordRule:
    """Return the first rule matching `text`; the trailing catch-all guarantees a result."""
    for rule in rules:
        if rule.matches(text):
            return rule
    # Only reachable with a hand-built list lacking a catch-all
    raise LookupError("No rule matched and no catch-all rule is defined")
