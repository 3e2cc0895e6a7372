"""Tests for query classification and status inference."""

from __future__ import annotations

from src.nlu.classifier import QueryClassification, classify_query, detect_language
from src.nlu.inference import infer_status_filter, is_follow_up_update
from src.nlu.normalize import fold_text
from src.nlu.schema import HistoryMessage, ProjectStatus, QueryType


def _classify(text: str, *, has_filters: bool = False) -> QueryClassification:
    return classify_query(fold_text(text), has_filters=has_filters)


def test_read_types() -> None:
    count = _classify("combien de projets terminés", has_filters=True)
    assert count.is_count
    assert count.query_type == QueryType.count
    assert count.is_question
    assert count.understood

    listing = _classify("liste mes ghost prod", has_filters=True)
    assert listing.query_type == QueryType.list


def test_update_types() -> None:
    assert _classify("passe les projets en cours en annulé", has_filters=True).query_type == QueryType.update
    assert _classify("deadline à demain").is_update
    assert not _classify("combien de projets terminés", has_filters=True).is_update


def test_meta_question() -> None:
    assert _classify("que peux-tu faire ?").is_meta_question
    assert _classify("qui es-tu ?").is_meta_question
    assert not _classify("liste les projets").is_meta_question


def test_conversational_questions_are_not_understood() -> None:
    opinion = _classify("t'en penses quoi ?")
    assert opinion.is_conversational_question
    assert not opinion.understood

    about_assistant = _classify("tu as des projets ?")
    assert about_assistant.is_question_about_assistant_projects
    assert about_assistant.is_conversational_question
    assert not about_assistant.understood


def test_non_musical_project_is_not_a_project_mention() -> None:
    assert not _classify("parle-moi du projet de loi").has_project_mention
    assert _classify("parle-moi de mes projets").has_project_mention


def test_detect_language() -> None:
    assert detect_language(fold_text("how many projects under 70%")) == "en"
    assert detect_language(fold_text("combien de projets sous les 70%")) == "fr"


def test_follow_up_detection() -> None:
    assert is_follow_up_update(fold_text("passe-les en terminé"))
    assert is_follow_up_update(fold_text("mets les comme annulés"))
    assert not is_follow_up_update(fold_text("passe les projets en terminé"))


def test_status_inferred_from_last_filters() -> None:
    status = infer_status_filter(
        fold_text("passe-les en terminé"),
        has_status_filter=False,
        new_status=ProjectStatus.TERMINE,
        last_filters={"status": "EN_COURS"},
        history=[],
    )
    assert status == ProjectStatus.EN_COURS


def test_status_inferred_from_recent_user_messages() -> None:
    history = [
        HistoryMessage(role="user", content="liste les projets en cours"),
        HistoryMessage(role="assistant", content="J'ai trouvé 3 projet(s)."),
        HistoryMessage(role="user", content="passe-les en terminé"),
    ]
    status = infer_status_filter(
        fold_text("passe-les en terminé"),
        has_status_filter=False,
        new_status=ProjectStatus.TERMINE,
        last_filters={},
        history=history,
    )
    assert status == ProjectStatus.EN_COURS


def test_no_inference_when_status_filter_present() -> None:
    status = infer_status_filter(
        fold_text("passe-les en terminé"),
        has_status_filter=True,
        new_status=ProjectStatus.TERMINE,
        last_filters={"status": "EN_COURS"},
        history=[],
    )
    assert status is None


def test_earlier_follow_ups_do_not_count_as_filters() -> None:
    history = [
        HistoryMessage(role="user", content="liste les projets en cours"),
        HistoryMessage(role="user", content="passe-les en annulé"),
        HistoryMessage(role="user", content="passe-les en terminé"),
    ]
    status = infer_status_filter(
        fold_text("passe-les en terminé"),
        has_status_filter=False,
        new_status=ProjectStatus.TERMINE,
        last_filters={},
        history=history,
    )
    assert status == ProjectStatus.EN_COURS
