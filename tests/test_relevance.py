"""Unit tests for relevance scoring, candidate filters and context formatting."""

import pytest

from study_assistant.models import Note, PlacementQuestion, GithubRepo
from study_assistant.services.embeddings import serialize_embedding
from study_assistant.services.retrieval import (
    RetrievalConfig,
    Source,
    build_sources,
    calculate_relevance,
    find_relevant_notes,
    find_relevant_questions,
    find_relevant_repos,
    format_context,
    format_repo_content,
    is_project_query,
)

from conftest import KeywordEmbedder


ANALYSIS = {
    "summary": "A REST API for booking cinema seats",
    "technologies": ["node.js", "postgresql"],
    "architecture": "Backend API service",
    "keyFiles": [{"name": "server.js", "content": "const express", "purpose": "Main application entry point"}],
}


def make_note(title, content, embedding=None):
    return Note(title=title, content=content, embedding=embedding)


def make_repo(name, description="", analysis=None, language="JavaScript", stars=0):
    return GithubRepo(repo_name=name, description=description, analysis=analysis, language=language, stars=stars)


# ── Scoring ──────────────────────────────────────────────────────────

def test_relevance_is_fraction_of_query_words_found():
    assert calculate_relevance("Dijkstra shortest path", "dijkstra") == 1.0
    assert calculate_relevance("Dijkstra shortest path", "dijkstra heap") == 0.5
    assert calculate_relevance("Dijkstra shortest path", "bellman ford") == 0.0


def test_relevance_matches_substrings_case_insensitively():
    assert calculate_relevance("GraphQL schemas", "GRAPH") == 1.0


@pytest.mark.parametrize("query", ["", "   ", "\n\t"])
def test_relevance_of_empty_query_is_zero(query):
    assert calculate_relevance("anything at all", query) == 0.0


@pytest.mark.parametrize("text,query", [
    ("binary search tree", "tree search binary"),
    ("binary search tree", "heap"),
    ("", "some words here"),
    ("a a a", "a a a a"),
])
def test_relevance_is_bounded(text, query):
    score = calculate_relevance(text, query)
    assert 0.0 <= score <= 1.0
    words_found = all(w in text.lower() for w in query.lower().split())
    assert (score == 1.0) == words_found


def test_project_query_vocabulary():
    assert is_project_query("Explain the folder structure")
    assert is_project_query("which tech STACK")
    assert not is_project_query("what is dynamic programming")


# ── Notes / questions ────────────────────────────────────────────────

def test_note_kept_when_title_or_content_contains_query():
    notes = [
        make_note("Graphs", "Dijkstra shortest path"),
        make_note("Dijkstra recap", "priority queues"),
        make_note("Sorting", "merge sort and quick sort"),
    ]
    result = find_relevant_notes(notes, "Dijkstra", None, KeywordEmbedder())
    assert [n.title for n in result] == ["Graphs", "Dijkstra recap"]


def test_note_kept_on_embedding_similarity_alone():
    embedder = KeywordEmbedder(("graph", "path"))
    similar = make_note("Traversals", "BFS and DFS", embedding=serialize_embedding([1.0, 1.0]))
    unrelated = make_note("Sorting", "merge sort", embedding=serialize_embedding([0.0, 0.0]))
    no_embedding = make_note("Heaps", "binary heap")

    result = find_relevant_notes(
        [similar, unrelated, no_embedding], "graph path", [1.0, 1.0], embedder
    )
    assert result == [similar]


def test_similarity_threshold_is_strict():
    embedder = KeywordEmbedder()
    note = make_note("x", "y", embedding=serialize_embedding([1.0, 0.0]))

    class FixedSimilarity(KeywordEmbedder):
        def similarity(self, a, b):
            return 0.3

    assert find_relevant_notes([note], "zzz", [1.0, 0.0], FixedSimilarity()) == []
    assert find_relevant_notes([note], "zzz", [1.0, 0.0], embedder) == [note]


def test_note_cap_keeps_stored_order():
    notes = [make_note(f"Note {i}", "recursion basics") for i in range(6)]
    result = find_relevant_notes(notes, "recursion", None, KeywordEmbedder())
    assert [n.title for n in result] == ["Note 0", "Note 1", "Note 2"]


def test_question_matches_question_or_topic_and_caps_at_two():
    questions = [
        PlacementQuestion(company="Acme", topic="Graphs", question="Find the shortest path"),
        PlacementQuestion(company="Initech", topic="Arrays", question="Rotate an array"),
        PlacementQuestion(company="Globex", topic="Graph coloring", question="Color a map"),
        PlacementQuestion(company="Umbrella", topic="graphs", question="Detect a cycle"),
    ]
    result = find_relevant_questions(questions, "graph", None, KeywordEmbedder())
    assert [q.company for q in result] == ["Acme", "Globex"]


def test_question_kept_on_embedding_similarity_alone():
    embedder = KeywordEmbedder(("graph",))
    similar = serialize_embedding([1.0])
    questions = [
        PlacementQuestion(company="Acme", topic="Coloring", question="Color a map", embedding=similar),
        PlacementQuestion(company="Initech", topic="Arrays", question="Rotate an array"),
        PlacementQuestion(company="Globex", topic="Networks", question="Route packets", embedding=similar),
        PlacementQuestion(company="Umbrella", topic="Matching", question="Pair the nodes", embedding=similar),
    ]

    result = find_relevant_questions(questions, "graph problems", [1.0], embedder)

    assert [q.company for q in result] == ["Acme", "Globex"]


def test_custom_caps_are_honoured():
    config = RetrievalConfig(note_limit=1, question_limit=1)
    notes = [make_note("a", "stack"), make_note("b", "stack")]
    assert len(find_relevant_notes(notes, "stack", None, KeywordEmbedder(), config)) == 1


# ── Repositories ─────────────────────────────────────────────────────

def test_repo_partial_word_match_without_analysis():
    repos = [make_repo("alice/movies_website"), make_repo("alice/dotfiles")]
    result = find_relevant_repos(repos, "what does my movies_website repo use")
    assert [r.repo_name for r in result] == ["alice/movies_website"]


def test_repo_partial_match_ignores_short_words():
    repos = [make_repo("alice/ai"), make_repo("alice/ml", description="an ml toolkit")]
    assert find_relevant_repos(repos, "is ai hard") == []


def test_repo_exact_match_in_analysis():
    repo = make_repo("alice/booking", analysis=ANALYSIS)
    assert find_relevant_repos([repo], "cinema seats") == [repo]


def test_project_query_includes_analyzed_repos():
    analyzed = make_repo("alice/booking", analysis=ANALYSIS)
    plain = make_repo("alice/notes")
    assert find_relevant_repos([plain, analyzed], "explain the architecture") == [analyzed]


def test_project_query_without_any_analyzed_repo_returns_nothing():
    repos = [make_repo("alice/booking"), make_repo("alice/notes")]
    assert find_relevant_repos(repos, "show me the folder layout") == []


def test_repo_cap():
    repos = [make_repo(f"alice/algo-{i}", analysis=ANALYSIS) for i in range(5)]
    assert len(find_relevant_repos(repos, "algo")) == 3


def test_format_repo_content_with_analysis():
    repo = make_repo("alice/booking", description="Seat booking", analysis=ANALYSIS, stars=4)
    content = format_repo_content(repo)
    assert content.startswith("Repository: alice/booking\nDescription: Seat booking\n")
    assert "Primary Language: JavaScript\n" in content
    assert "Stars: 4\n" in content
    assert "\n\nSummary: A REST API for booking cinema seats\n" in content
    assert "Technologies: node.js, postgresql\n" in content
    assert "Architecture: Backend API service\n" in content
    assert "\nKey Files:\n- server.js: Main application entry point\n" in content


def test_format_repo_content_without_analysis_or_stars():
    content = format_repo_content(make_repo("alice/x", language="Python"))
    assert content == "Repository: alice/x\nPrimary Language: Python\n"


# ── Merging and context ──────────────────────────────────────────────

def test_build_sources_sorts_and_caps():
    notes = [
        make_note("One", "graphs"),
        make_note("Two", "graphs and trees"),
        make_note("Three", "x" * 600 + " trees graphs"),
    ]
    questions = [
        PlacementQuestion(company="Acme", topic="Trees", question="Invert a binary tree"),
        PlacementQuestion(company="Globex", topic="Graphs", question="graphs trees both"),
    ]
    repos = [make_repo("alice/graphs-trees")]

    sources = build_sources(notes, questions, repos, "graphs trees")

    assert len(sources) == 5
    scores = [s.score for s in sources]
    assert scores == sorted(scores, reverse=True)
    # Ties keep filter order: notes, then questions, then repos
    assert [s.title for s in sources[:3]] == ["Two", "Three", "Globex - Graphs"]


def test_note_preview_is_truncated_with_ellipsis():
    sources = build_sources([make_note("Long", "a" * 501)], [], [], "a")
    assert sources[0].content == "a" * 500 + "..."

    sources = build_sources([make_note("Exact", "b" * 500)], [], [], "b")
    assert sources[0].content == "b" * 500


def test_format_context_blocks():
    context = format_context([
        Source(type="note", title="Graphs", content="Dijkstra shortest path", score=1.0),
        Source(type="github", title="alice/maps", content="Repository: alice/maps\n", score=0.5),
    ])
    assert context == (
        "[NOTE] Graphs:\nDijkstra shortest path"
        "\n\n"
        "[GITHUB] alice/maps:\nRepository: alice/maps\n"
    )
