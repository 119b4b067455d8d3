"""Tests for section detection, chunking and result merging."""

from .merge import merge_results
from .models import Education, Experience, Grant, PersonalInfo, Publication, StructuredCV
from .sections import classify_header, detect_section_headers, split_into_chunks

CV_TEXT = (
    "JANE DOE\n"
    "Professor of Physics\n"
    "\n"
    "EDUCATION\n"
    "PhD in Physics, Stanford University, 2010\n"
    "\n"
    "PUBLICATIONS\n"
    "Doe, J. (2020). Quantum things. Nature, 12, pp. 1-5.\n"
    "[PAGE 1 END]"
)


# --- Header Classification Tests ---


def test_uppercase_keyword_line_is_header() -> None:
    assert classify_header("EDUCATION", previous="Professor") == "education"


def test_prefixed_line_is_header() -> None:
    assert classify_header("B. Courses Taught", previous="Some text") == "teaching"


def test_prefixed_uppercase_line_without_keyword_is_unknown() -> None:
    assert classify_header("3. MISCELLANY", previous="") == "unknown"


def test_citation_is_never_header() -> None:
    assert classify_header("SMITH, J. (2019). JOURNAL OF THINGS") is None
    assert classify_header("Journal of Physics, vol. 3") is None


def test_plain_sentence_is_not_header() -> None:
    assert classify_header("I taught several courses", previous="Intro") is None


def test_overlong_line_is_not_header() -> None:
    assert classify_header("PUBLICATIONS " * 10) is None


# --- Detection Tests ---


def test_detect_section_headers() -> None:
    headers = detect_section_headers(CV_TEXT)

    assert [h.type for h in headers] == ["education", "publications"]
    assert CV_TEXT[headers[0].position :].startswith("EDUCATION")
    assert CV_TEXT[headers[1].position :].startswith("PUBLICATIONS")


def test_subsection_headings_are_skipped() -> None:
    headers = detect_section_headers("PUBLICATIONS\n\nA1. Journal Articles\nDoe (2020)")

    assert [h.text for h in headers] == ["PUBLICATIONS"]


# --- Chunking Tests ---


def test_short_text_is_single_chunk() -> None:
    chunks = split_into_chunks(CV_TEXT, detect_section_headers(CV_TEXT), 20000)

    assert len(chunks) == 1
    assert chunks[0].id == 1
    assert chunks[0].text == CV_TEXT
    assert chunks[0].start_section == "personal"


def test_long_text_splits_on_sections() -> None:
    chunks = split_into_chunks(CV_TEXT, detect_section_headers(CV_TEXT), 60)

    assert [c.id for c in chunks] == [1, 2, 3]
    assert [c.start_section for c in chunks] == ["personal", "education", "publications"]
    assert "".join(c.text for c in chunks) == CV_TEXT


def test_sections_are_packed_together() -> None:
    chunks = split_into_chunks(CV_TEXT, detect_section_headers(CV_TEXT), 90)

    assert [c.start_section for c in chunks] == ["personal", "publications"]
    assert chunks[0].text.startswith("JANE DOE")
    assert "EDUCATION" in chunks[0].text
    assert "".join(c.text for c in chunks) == CV_TEXT


def test_text_without_headers_splits_on_paragraphs() -> None:
    text = "a" * 50 + "\n\n" + "b" * 50

    chunks = split_into_chunks(text, [], 60)

    assert [c.text for c in chunks] == ["a" * 50, "b" * 50]
    assert all(c.start_section is None for c in chunks)


# --- Merge Tests ---


def test_merge_first_personal_value_wins() -> None:
    merged = merge_results(
        [
            StructuredCV(personal=PersonalInfo(first_name="Jane")),
            StructuredCV(personal=PersonalInfo(first_name="Janet", last_name="Doe", birth_year=1980)),
        ]
    )

    assert merged.personal.first_name == "Jane"
    assert merged.personal.last_name == "Doe"
    assert merged.personal.birth_year == 1980


def test_merge_deduplicates_publications_by_title_and_year() -> None:
    merged = merge_results(
        [
            StructuredCV(publications=[Publication(title="Quantum Things", publication_year=2020)]),
            StructuredCV(
                publications=[
                    Publication(title="quantum things", publication_year=2020),
                    Publication(title="Quantum Things", publication_year=2021),
                ]
            ),
        ]
    )

    assert [(p.title, p.publication_year) for p in merged.publications] == [
        ("Quantum Things", 2020),
        ("Quantum Things", 2021),
    ]


def test_merge_deduplicates_education_and_experience() -> None:
    part = StructuredCV(
        education=[Education(institution="MIT", degree_type="PhD")],
        experience=[Experience(institution="MIT", position_title="Postdoc", start_date="2010")],
    )
    other = StructuredCV(
        education=[
            Education(institution="mit", degree_type="phd"),
            Education(institution="MIT", degree_type="MSc"),
        ],
        experience=[Experience(institution="MIT", position_title="Postdoc", start_date="2011")],
    )

    merged = merge_results([part, other])

    assert len(merged.education) == 2
    assert len(merged.experience) == 2


def test_merge_concatenates_other_collections() -> None:
    grant = Grant(title="ERC Starting Grant", funding_institution="ERC")

    merged = merge_results([StructuredCV(grants=[grant]), StructuredCV(grants=[grant])])

    assert len(merged.grants) == 2
