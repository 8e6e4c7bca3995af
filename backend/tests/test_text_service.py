from ats_engine.schemas.resume import ResumeDocument
from ats_engine.services.text_service import (
    ENTRY_SEPARATOR,
    clean_text,
    resume_content_hash,
    resume_to_text,
    section_entry_texts,
)

ALL_HEADERS = (
    "WORK EXPERIENCE",
    "EDUCATION",
    "SKILLS",
    "PROJECTS",
    "LANGUAGES",
    "CERTIFICATES",
    "AWARDS",
    "PUBLICATIONS",
    "VOLUNTEER EXPERIENCE",
)


def test_clean_text_normalizes_bullets_and_whitespace():
    assert clean_text("•  Python\t\tand   Go\n\n\n\nDone ") == "- Python and Go\n\nDone"


def test_resume_to_text_is_deterministic(sample_resume):
    assert resume_to_text(sample_resume) == resume_to_text(sample_resume)
    assert resume_to_text(ResumeDocument.model_validate(sample_resume)) == resume_to_text(sample_resume)


def test_skills_only_resume_renders_only_skills_header():
    text = resume_to_text({"skills": [{"name": "Languages", "keywords": ["Python", "Go"]}]})

    assert text.startswith("SKILLS")
    assert "Skills: Python, Go" in text
    for header in ALL_HEADERS:
        if header != "SKILLS":
            assert header not in text


def test_sections_follow_fixed_order(sample_resume):
    text = resume_to_text(sample_resume)

    positions = [text.index(header) for header in ("WORK EXPERIENCE", "EDUCATION", "SKILLS", "LANGUAGES")]
    assert positions == sorted(positions)
    assert text.startswith("Name: Ada Lovelace")


def test_work_entries_are_separated_and_open_ended_dates_marked(sample_resume):
    text = resume_to_text(sample_resume)

    assert ENTRY_SEPARATOR.strip() in text
    assert "End Date: Present" in text
    assert "End Date: 2019-12" in text


def test_skill_and_language_entries_are_separated():
    text = resume_to_text(
        {
            "skills": [
                {"name": "Backend", "keywords": ["Python"]},
                {"name": "Ops", "keywords": ["Docker"]},
            ],
            "languages": [
                {"language": "English", "fluency": "Native"},
                {"language": "German", "fluency": "B2"},
            ],
        }
    )

    skills, languages = text.split("LANGUAGES")
    assert skills.index("Category: Backend") < skills.index(ENTRY_SEPARATOR.strip()) < skills.index("Category: Ops")
    assert languages.index("English (Native)") < languages.index(ENTRY_SEPARATOR.strip()) < languages.index("German (B2)")


def test_empty_or_malformed_resume_renders_empty_text():
    assert resume_to_text({}) == ""
    assert resume_to_text(None) == ""
    assert resume_to_text({"work": "not a list", "skills": [None, 3]}) == ""


def test_content_hash_is_stable_and_tracks_scored_sections(sample_resume):
    first = resume_content_hash(sample_resume)

    assert resume_content_hash(sample_resume) == first
    assert len(first) == 64

    sample_resume["basics"]["name"] = "Someone Else"
    assert resume_content_hash(sample_resume) == first

    sample_resume["skills"][0]["keywords"].append("Rust")
    assert resume_content_hash(sample_resume) != first


def test_section_entry_texts_has_one_text_per_entry(sample_resume):
    sections = section_entry_texts(sample_resume)

    assert list(sections) == ["work", "education", "skills"]
    assert len(sections["work"]) == 2
    assert len(sections["education"]) == 1
    assert "Company: Analytical Engines Ltd" in sections["work"][0]
