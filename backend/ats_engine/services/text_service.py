import hashlib
import json
import re
import unicodedata
from typing import Any, Dict, Iterable, List, Mapping

from pydantic import ValidationError

from ats_engine.schemas.resume import ResumeDocument

ENTRY_SEPARATOR = "\n---\n"
HASHED_SECTIONS = ("work", "education", "skills")


def clean_text(text: str) -> str:
    normalized = unicodedata.normalize("NFKC", text or "")
    normalized = re.sub(r"[\x00-\x09\x0B-\x1F\x7F]", " ", normalized)
    normalized = re.sub(r"[\u2022\u25CF\u25AA\u25E6]", "-", normalized)
    normalized = re.sub(r"[^\S\r\n]+", " ", normalized)
    normalized = re.sub(r"\n{3,}", "\n\n", normalized)
    return normalized.strip()


def _as_plain(resume: ResumeDocument | Mapping[str, Any] | None) -> Dict[str, Any]:
    if isinstance(resume, ResumeDocument):
        return resume.model_dump(mode="json", exclude_none=True)
    if isinstance(resume, Mapping):
        return dict(resume)
    return {}


def _text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value).strip()


def _entries(data: Mapping[str, Any], key: str) -> List[Mapping[str, Any]]:
    value = data.get(key)
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, Mapping)]


def _strings(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [_text(item) for item in value if _text(item)]


def _labeled(lines: List[str], label: str, value: Any) -> None:
    text = _text(value)
    if text:
        lines.append(f"{label}: {text}")


def _highlights(lines: List[str], values: Any) -> None:
    items = _strings(values)
    if items:
        lines.append("Highlights:")
        lines.extend(f"  • {item}" for item in items)


def _date_range(lines: List[str], entry: Mapping[str, Any]) -> None:
    start = _text(entry.get("startDate"))
    end = _text(entry.get("endDate"))
    if start:
        lines.append(f"Start Date: {start}")
    if end:
        lines.append(f"End Date: {end}")
    elif start:
        lines.append("End Date: Present")


def _render_basics(basics: Mapping[str, Any]) -> List[str]:
    lines: List[str] = []
    _labeled(lines, "Name", basics.get("name"))
    _labeled(lines, "Title", basics.get("label"))
    _labeled(lines, "Email", basics.get("email"))
    _labeled(lines, "Phone", basics.get("phone"))
    _labeled(lines, "Website", basics.get("url"))

    summary = _text(basics.get("summary"))
    if summary:
        lines.append(f"\nSummary:\n{summary}")

    location = basics.get("location")
    if isinstance(location, Mapping):
        parts = [
            _text(location.get(key))
            for key in ("address", "city", "region", "postalCode", "countryCode")
        ]
        parts = [part for part in parts if part]
        if parts:
            lines.append(f"Location: {', '.join(parts)}")

    profiles = []
    for profile in _entries(basics, "profiles"):
        network = _text(profile.get("network"))
        target = _text(profile.get("url")) or _text(profile.get("username"))
        if network or target:
            profiles.append(f"{network}: {target}".strip(": "))
    if profiles:
        lines.append(f"Profiles: {', '.join(profiles)}")
    return lines


def _render_work(entry: Mapping[str, Any]) -> List[str]:
    lines: List[str] = []
    _labeled(lines, "Company", entry.get("name"))
    _labeled(lines, "Position", entry.get("position"))
    _date_range(lines, entry)
    _labeled(lines, "URL", entry.get("url"))
    _labeled(lines, "Summary", entry.get("summary"))
    _highlights(lines, entry.get("highlights"))
    _labeled(lines, "Description", entry.get("description"))
    return lines


def _render_education(entry: Mapping[str, Any]) -> List[str]:
    lines: List[str] = []
    _labeled(lines, "Institution", entry.get("institution"))
    _labeled(lines, "Area", entry.get("area"))
    _labeled(lines, "Degree", entry.get("studyType"))
    _date_range(lines, entry)
    _labeled(lines, "GPA/Score", entry.get("score"))
    courses = _strings(entry.get("courses"))
    if courses:
        lines.append(f"Courses: {', '.join(courses)}")
    return lines


def _render_skill(entry: Mapping[str, Any]) -> List[str]:
    lines: List[str] = []
    _labeled(lines, "Category", entry.get("name"))
    _labeled(lines, "Level", entry.get("level"))
    keywords = _strings(entry.get("keywords"))
    if keywords:
        lines.append(f"Skills: {', '.join(keywords)}")
    return lines


def _render_project(entry: Mapping[str, Any]) -> List[str]:
    lines: List[str] = []
    _labeled(lines, "Project", entry.get("name"))
    _labeled(lines, "Description", entry.get("description"))
    _highlights(lines, entry.get("highlights"))
    keywords = _strings(entry.get("keywords"))
    if keywords:
        lines.append(f"Technologies: {', '.join(keywords)}")
    _labeled(lines, "URL", entry.get("url"))
    _date_range(lines, entry)
    return lines


def _render_language(entry: Mapping[str, Any]) -> List[str]:
    language = _text(entry.get("language"))
    if not language:
        return []
    fluency = _text(entry.get("fluency"))
    return [f"{language} ({fluency})" if fluency else language]


def _render_certificate(entry: Mapping[str, Any]) -> List[str]:
    lines: List[str] = []
    _labeled(lines, "Certificate", entry.get("name"))
    _labeled(lines, "Date", entry.get("date"))
    _labeled(lines, "Issuer", entry.get("issuer"))
    _labeled(lines, "URL", entry.get("url"))
    return lines


def _render_award(entry: Mapping[str, Any]) -> List[str]:
    lines: List[str] = []
    _labeled(lines, "Award", entry.get("title"))
    _labeled(lines, "Date", entry.get("date"))
    _labeled(lines, "Awarder", entry.get("awarder"))
    _labeled(lines, "Summary", entry.get("summary"))
    return lines


def _render_publication(entry: Mapping[str, Any]) -> List[str]:
    lines: List[str] = []
    _labeled(lines, "Publication", entry.get("name"))
    _labeled(lines, "Publisher", entry.get("publisher"))
    _labeled(lines, "Release Date", entry.get("releaseDate"))
    _labeled(lines, "URL", entry.get("url"))
    _labeled(lines, "Summary", entry.get("summary"))
    return lines


def _render_volunteer(entry: Mapping[str, Any]) -> List[str]:
    lines: List[str] = []
    _labeled(lines, "Organization", entry.get("organization"))
    _labeled(lines, "Position", entry.get("position"))
    _date_range(lines, entry)
    _labeled(lines, "Summary", entry.get("summary"))
    _highlights(lines, entry.get("highlights"))
    return lines


# (resume key, header, renderer); entries within a section are split by ENTRY_SEPARATOR
SECTIONS = (
    ("work", "WORK EXPERIENCE", _render_work),
    ("education", "EDUCATION", _render_education),
    ("skills", "SKILLS", _render_skill),
    ("projects", "PROJECTS", _render_project),
    ("languages", "LANGUAGES", _render_language),
    ("certificates", "CERTIFICATES", _render_certificate),
    ("awards", "AWARDS", _render_award),
    ("publications", "PUBLICATIONS", _render_publication),
    ("volunteer", "VOLUNTEER EXPERIENCE", _render_volunteer),
)


def _render_section(entries: Iterable[Mapping[str, Any]], renderer) -> List[str]:
    blocks = [block for block in (renderer(entry) for entry in entries) if block]
    lines: List[str] = []
    for index, block in enumerate(blocks):
        if index > 0:
            lines.append(ENTRY_SEPARATOR)
        lines.extend(block)
    return lines


def resume_to_text(resume: ResumeDocument | Mapping[str, Any] | None) -> str:
    """Render a resume as labeled plain text, sections in a fixed order.

    Absent or empty sections produce no header at all, so the output only
    describes what the resume actually contains.
    """
    data = _as_plain(resume)
    lines: List[str] = []

    basics = data.get("basics")
    if isinstance(basics, Mapping):
        lines.extend(_render_basics(basics))

    for key, header, renderer in SECTIONS:
        body = _render_section(_entries(data, key), renderer)
        if body:
            lines.append(f"\n\n{header}\n")
            lines.extend(body)

    return "\n".join(lines).strip()


def resume_content_hash(resume: ResumeDocument | Mapping[str, Any] | None) -> str:
    if isinstance(resume, Mapping):
        try:
            resume = ResumeDocument.model_validate(resume)
        except ValidationError:
            # hashed as given
            pass
    data = _as_plain(resume)
    subset = {key: data.get(key) or [] for key in HASHED_SECTIONS}
    canonical = json.dumps(subset, sort_keys=True, ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def section_entry_texts(resume: ResumeDocument | Mapping[str, Any] | None) -> Dict[str, List[str]]:
    """One rendered text per entry of every hashed section, in resume order."""
    data = _as_plain(resume)
    renderers = {key: renderer for key, _, renderer in SECTIONS}
    return {
        key: ["\n".join(renderers[key](entry)) for entry in _entries(data, key)]
        for key in HASHED_SECTIONS
    }
