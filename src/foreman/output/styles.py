"""Output styles: system-prompt instructions that shape how the model answers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

STYLES_FILENAME = "output-styles.yaml"


@dataclass(frozen=True, slots=True)
class StyleRule:
    """One instruction in an output style."""

    type: str  # "formatting", "behavior", "language", "constraint"
    rule: str
    priority: str | None = None


@dataclass(frozen=True, slots=True)
class StyleExample:
    input: str
    output: str
    explanation: str | None = None


@dataclass(frozen=True, slots=True)
class OutputStyle:
    """A named set of rules and examples."""

    name: str
    description: str = ""
    rules: tuple[StyleRule, ...] = ()
    examples: tuple[StyleExample, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "rules": [
                {k: v for k, v in (("type", r.type), ("rule", r.rule), ("priority", r.priority)) if v}
                for r in self.rules
            ],
        }
        if self.examples:
            data["examples"] = [
                {k: v for k, v in (("input", e.input), ("output", e.output), ("explanation", e.explanation)) if v}
                for e in self.examples
            ]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OutputStyle:
        if not isinstance(data, dict) or not data.get("name") or "rules" not in data:
            raise ValueError("An output style needs a name and rules")
        return cls(
            name=str(data["name"]),
            description=str(data.get("description", "")),
            rules=tuple(
                StyleRule(type=r.get("type", "behavior"), rule=r["rule"], priority=r.get("priority"))
                for r in data.get("rules") or ()
            ),
            examples=tuple(
                StyleExample(input=e["input"], output=e["output"], explanation=e.get("explanation"))
                for e in data.get("examples") or ()
            ),
        )


DEFAULT_STYLES: dict[str, OutputStyle] = {
    "concise": OutputStyle(
        name="concise",
        description="Minimal, direct responses without unnecessary elaboration",
        rules=(
            StyleRule("formatting", "Keep responses to 1-3 sentences maximum"),
            StyleRule("behavior", "Answer directly without preamble or postamble"),
            StyleRule("behavior", "Avoid explanations unless explicitly requested"),
            StyleRule("constraint", "No emojis or decorative formatting"),
        ),
        examples=(
            StyleExample("What is 2+2?", "4"),
            StyleExample("How do I list files?", "Use `ls` command."),
        ),
    ),
    "detailed": OutputStyle(
        name="detailed",
        description="Comprehensive responses with explanations and context",
        rules=(
            StyleRule("formatting", "Provide thorough explanations with examples"),
            StyleRule("behavior", "Include context and reasoning for suggestions"),
            StyleRule("behavior", "Anticipate follow-up questions"),
            StyleRule("language", "Use clear technical language with definitions"),
        ),
        examples=(
            StyleExample(
                "What is 2+2?",
                "The sum of 2 and 2 is 4. Adding two groups of two units gives four units.",
            ),
        ),
    ),
    "socratic": OutputStyle(
        name="socratic",
        description="Guide through questions rather than direct answers",
        rules=(
            StyleRule("behavior", "Respond with guiding questions when appropriate"),
            StyleRule("behavior", "Help users discover solutions themselves"),
            StyleRule("language", "Use encouraging and exploratory language"),
            StyleRule("constraint", "Only provide direct answers for factual queries"),
        ),
        examples=(
            StyleExample(
                "How should I structure this function?",
                "What are the main responsibilities this function handles? "
                "Could any of them live somewhere else?",
            ),
        ),
    ),
    "technical": OutputStyle(
        name="technical",
        description="Precise technical communication with code focus",
        rules=(
            StyleRule("formatting", "Use code blocks and technical terminology"),
            StyleRule("behavior", "Prioritize accuracy and correctness"),
            StyleRule("language", "Use industry-standard terminology"),
            StyleRule("constraint", "Include relevant technical specifications"),
        ),
    ),
    "tutorial": OutputStyle(
        name="tutorial",
        description="Step-by-step instructional format",
        rules=(
            StyleRule("formatting", "Use numbered steps for processes"),
            StyleRule("behavior", "Include prerequisites and expected outcomes"),
            StyleRule("behavior", "Provide checkpoints for validation"),
            StyleRule("language", "Use clear, instructional language"),
        ),
    ),
}

DEFAULT_STYLE_NAME = "concise"


class OutputStyleFormatter:
    """Applies one output style to prompts and responses."""

    def __init__(self, style: OutputStyle | None = None) -> None:
        self.style = style or DEFAULT_STYLES[DEFAULT_STYLE_NAME]

    def format_system_prompt(self, base_prompt: str) -> str:
        parts = [base_prompt, "", f"# Output Style: {self.style.name}"]
        if self.style.description:
            parts += [self.style.description, ""]
        parts.append("## Output Rules:")
        for rule in self.style.rules:
            suffix = f" [{rule.priority.upper()}]" if rule.priority else ""
            parts.append(f"- {rule.rule}{suffix}")
        if self.style.examples:
            parts += ["", "## Examples:"]
            for example in self.style.examples:
                parts.append(f"Input: {example.input}")
                parts.append(f"Output: {example.output}")
                if example.explanation:
                    parts.append(f"Explanation: {example.explanation}")
                parts.append("")
        return "\n".join(parts).rstrip("\n") + "\n"

    def apply_style(self, response: str) -> str:
        """Post-process a final response. Styling happens in the prompt, so this is the identity."""
        return response


class OutputStyleManager:
    """Built-in styles plus custom ones stored in ``output-styles.yaml``."""

    def __init__(self, config_path: str | Path | None = None) -> None:
        self._config_path = Path(config_path) if config_path is not None else None
        self._styles: dict[str, OutputStyle] = dict(DEFAULT_STYLES)
        self._active: str | None = None
        self.formatter = OutputStyleFormatter()
        self._load()

    @classmethod
    def for_project(cls, project_dir: str | Path) -> OutputStyleManager:
        return cls(Path(project_dir) / ".foreman" / STYLES_FILENAME)

    def get_style(self, name: str) -> OutputStyle | None:
        return self._styles.get(name)

    def list_styles(self) -> list[str]:
        return list(self._styles)

    @property
    def active_style(self) -> OutputStyle:
        if self._active and self._active in self._styles:
            return self._styles[self._active]
        return DEFAULT_STYLES[DEFAULT_STYLE_NAME]

    def set_active_style(self, name: str, *, persist: bool = True) -> bool:
        style = self._styles.get(name)
        if style is None:
            logger.warning("Output style not found: %s", name)
            return False
        self._active = name
        self.formatter.style = style
        if persist:
            self.save()
        return True

    def add_style(self, style: OutputStyle) -> None:
        self._styles[style.name] = style
        self.save()

    def remove_style(self, name: str) -> bool:
        if name in DEFAULT_STYLES:
            logger.warning("Cannot remove built-in style: %s", name)
            return False
        if self._styles.pop(name, None) is None:
            return False
        self.save()
        return True

    def create_from_template(self, template: str, name: str, **changes: Any) -> OutputStyle:
        base = self._styles.get(template) or DEFAULT_STYLES[DEFAULT_STYLE_NAME]
        style = replace(base, name=name, **changes)
        self.add_style(style)
        return style

    def export_style(self, name: str) -> str | None:
        style = self._styles.get(name)
        return yaml.safe_dump(style.to_dict(), sort_keys=False) if style else None

    def import_style(self, text: str) -> OutputStyle | None:
        try:
            style = OutputStyle.from_dict(yaml.safe_load(text))
        except (yaml.YAMLError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Failed to import output style: %s", exc)
            return None
        self.add_style(style)
        return style

    def save(self) -> None:
        if self._config_path is None:
            return
        custom = {n: s.to_dict() for n, s in self._styles.items() if n not in DEFAULT_STYLES}
        doc: dict[str, Any] = {"styles": custom}
        if self._active:
            doc["active_style"] = self._active
        try:
            self._config_path.parent.mkdir(parents=True, exist_ok=True)
            self._config_path.write_text(yaml.safe_dump(doc, sort_keys=False), encoding="utf-8")
        except OSError as exc:
            logger.warning("Failed to save output styles to %s: %s", self._config_path, exc)

    def _load(self) -> None:
        if self._config_path is None or not self._config_path.is_file():
            return
        try:
            doc = yaml.safe_load(self._config_path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("Failed to load output styles from %s: %s", self._config_path, exc)
            return
        for name, data in (doc.get("styles") or {}).items():
            try:
                self._styles[name] = OutputStyle.from_dict({"name": name, **data})
            except (ValueError, KeyError, TypeError) as exc:
                logger.warning("Skipping invalid output style %s: %s", name, exc)
        active = doc.get("active_style")
        if active:
            self.set_active_style(active, persist=False)
