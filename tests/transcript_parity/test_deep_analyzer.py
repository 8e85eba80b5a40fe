"""
Tests for the Deep Difference Analyzer.

============================================================
PURPOSE
============================================================
Covers:
1. Game state capture
2. Difference-type classification
3. Affected systems and contextual factors
4. Root causes, confidence and fix recommendations
5. Full report analysis guarantees (determinism, no mutation)

============================================================
"""

import pytest


# ============================================================
# FIXTURES
# ============================================================

def make_transcript(transcript_id, outputs, commands, metadata=None):
    from transcript_parity.models import Transcript, TranscriptEntry

    entries = [TranscriptEntry(index=0, command="", output=outputs[0], turn_number=0)]
    for i, (command, output) in enumerate(zip(commands, outputs[1:]), 1):
        entries.append(TranscriptEntry(index=i, command=command, output=output, turn_number=i))
    return Transcript(id=transcript_id, source="test", entries=entries, metadata=metadata or {})


def make_diff(command, expected, actual, similarity=0.3, severity="critical", index=1):
    from transcript_parity.comparators import categorize_command
    from transcript_parity.models import DiffEntry, DiffSeverity

    return DiffEntry(
        index=index,
        command=command,
        expected=expected,
        actual=actual,
        similarity=similarity,
        severity=DiffSeverity(severity),
        category=categorize_command(command).value,
    )


def make_detail(severity="critical", similarity=0.3, systems=None, index=1):
    from transcript_parity.models import (
        DetailedDifference,
        DiffSeverity,
        DifferenceType,
        GameStateSnapshot,
        GameSystem,
    )

    return DetailedDifference(
        command_index=index,
        command="take lamp",
        game_state=GameStateSnapshot(),
        expected_output="Taken.",
        actual_output="No.",
        difference_type=DifferenceType.OBJECT_BEHAVIOR,
        affected_systems=systems or [GameSystem.MESSAGING, GameSystem.OBJECTS, GameSystem.PARSER],
        contextual_factors=[],
        similarity=similarity,
        severity=DiffSeverity(severity),
    )


@pytest.fixture
def analyzer():
    """Analyzer with default options."""
    from transcript_parity.deep_analyzer import create_deep_analyzer
    return create_deep_analyzer()


@pytest.fixture
def transcript_pair():
    """Reference and candidate that diverge at commands 1 and 2."""
    reference = make_transcript(
        "ref",
        [
            "West of House\nYou are standing in an open field.",
            "Taken.",
            "Forest    Score: 0    Moves: 2\nThis is a forest.",
        ],
        ["take leaflet", "north"],
    )
    candidate = make_transcript(
        "cand",
        [
            "West of House\nYou are standing in an open field.",
            "You can't see any leaflet here!",
            "Clearing    Score: 0    Moves: 2\nYou are in a clearing.",
        ],
        ["take leaflet", "north"],
        metadata={"seed": 42},
    )
    return reference, candidate


@pytest.fixture
def diff_report(transcript_pair):
    from transcript_parity.comparators import TranscriptComparator

    reference, candidate = transcript_pair
    return TranscriptComparator().compare(reference, candidate)


# ============================================================
# TEST: Game State Capture
# ============================================================

class TestCaptureGameState:
    """Tests for best-effort state snapshots."""

    def test_status_bar_location_and_score(self, analyzer):
        transcript = make_transcript(
            "t", ["Start", "Kitchen    Score: 10    Moves: 7\nYou are in the kitchen."], ["west"]
        )

        state = analyzer.capture_game_state(1, transcript)

        assert state.player_location == "Kitchen"
        assert state.score == 10
        assert state.turn_number == 1
        assert len(state.checksum) == 16

    def test_room_title_location(self, analyzer):
        transcript = make_transcript("t", ["Living Room\nYou are in the living room."], [])

        assert analyzer.capture_game_state(0, transcript).player_location == "Living Room"

    def test_inventory_list(self, analyzer):
        transcript = make_transcript(
            "t", ["Start", "You are carrying:\n  A brass lantern\n  A leaflet\n\nDone."], ["i"]
        )

        state = analyzer.capture_game_state(1, transcript)

        assert state.inventory == ["A brass lantern", "A leaflet"]

    def test_inventory_same_line(self, analyzer):
        transcript = make_transcript("t", ["Start", "You are carrying: a lamp, a sword"], ["i"])

        assert analyzer.capture_game_state(1, transcript).inventory == ["a lamp", "a sword"]

    def test_score_sentence(self, analyzer):
        transcript = make_transcript("t", ["Start", "Your score is 35 (total of 350 points)."], ["score"])

        assert analyzer.capture_game_state(1, transcript).score == 35

    def test_empty_transcript_default(self, analyzer):
        from transcript_parity.models import Transcript

        state = analyzer.capture_game_state(3, Transcript(id="t", source="x"))

        assert state.checksum == "empty"
        assert state.player_location == "unknown"

    def test_index_past_end_uses_last_entry(self, analyzer):
        transcript = make_transcript("t", ["Start", "Cellar\nIt is damp."], ["down"])

        assert analyzer.capture_game_state(9, transcript).player_location == "Cellar"

    def test_parse_failure_never_raises(self, analyzer):
        from transcript_parity.models import Transcript, TranscriptEntry

        transcript = Transcript(
            id="t",
            source="x",
            entries=[TranscriptEntry(index=0, command="", output="Start", turn_number="not-a-number")],
        )

        state = analyzer.capture_game_state(0, transcript)

        assert state.checksum == "empty"


# ============================================================
# TEST: Classification
# ============================================================

class TestClassifyDifference:
    """Tests for difference-type heuristics."""

    @pytest.mark.parametrize("command,expected,actual,difference_type", [
        ("north", "Forest", "", "sequence_dependency"),
        ("hello", "Hello.", "Nice weather we've been having lately.", "random_behavior"),
        ("xyzzy", "I don't understand that.", "A hollow voice says fool.", "parser_response"),
        ("kill troll", "The troll dodges.", "You miss.", "random_behavior"),
        ("wait", "The thief just left.", "Time passes.", "timing_difference"),
        ("take lamp", "Taken.", "The lamp is nailed down.", "object_behavior"),
        ("pray", "You can only pray at the altar.", "Nothing happens.", "conditional_logic"),
        ("look", "Kitchen", "Attic", "state_logic"),
        ("pray", "The door is locked.", "Nothing happens.", "state_logic"),
        ("pray", "Amen.", "Nothing happens.", "message_content"),
    ])
    def test_classify(self, analyzer, command, expected, actual, difference_type):
        diff = make_diff(command, expected, actual)

        assert analyzer.classify_difference(diff).value == difference_type


class TestAffectedSystems:
    """Tests for subsystem attribution."""

    def test_messaging_first_parser_last(self, analyzer):
        from transcript_parity.models import GameStateSnapshot, GameSystem

        systems = analyzer.identify_affected_systems(
            make_diff("take lamp", "Taken.", "No."), GameStateSnapshot()
        )

        assert systems == [
            GameSystem.MESSAGING,
            GameSystem.INVENTORY,
            GameSystem.OBJECTS,
            GameSystem.LIGHTING,
            GameSystem.PARSER,
        ]

    def test_look_adds_rooms_and_objects(self, analyzer):
        from transcript_parity.models import GameStateSnapshot, GameSystem

        systems = analyzer.identify_affected_systems(
            make_diff("look", "Kitchen", "Attic"), GameStateSnapshot()
        )

        assert systems == [GameSystem.MESSAGING, GameSystem.ROOMS, GameSystem.OBJECTS, GameSystem.PARSER]

    def test_score_difference_adds_scoring(self, analyzer):
        from transcript_parity.models import GameStateSnapshot, GameSystem

        systems = analyzer.identify_affected_systems(
            make_diff("put egg in case", "Your score is 10.", "Your score is 5."), GameStateSnapshot()
        )

        assert GameSystem.SCORING in systems

    def test_darkness_adds_lighting(self, analyzer):
        from transcript_parity.models import GameStateSnapshot, GameSystem

        systems = analyzer.identify_affected_systems(
            make_diff("down", "It is pitch black.", "Cellar"), GameStateSnapshot()
        )

        assert GameSystem.LIGHTING in systems
        assert GameSystem.ROOMS in systems

    def test_no_duplicates(self, analyzer):
        from transcript_parity.models import GameStateSnapshot

        systems = analyzer.identify_affected_systems(
            make_diff("examine lamp", "A lamp.", "A lantern."), GameStateSnapshot()
        )

        assert len(systems) == len(set(systems))


# ============================================================
# TEST: Root Causes & Recommendations
# ============================================================

class TestRootCause:
    """Tests for cause, confidence and recommendation rules."""

    def test_target_files_configurable(self):
        from transcript_parity.deep_analyzer import AnalysisOptions, DeepAnalyzer
        from transcript_parity.models import GameSystem

        analyzer = DeepAnalyzer(AnalysisOptions(target_files={GameSystem.OBJECTS: ["engine/objects.py"]}))

        assert analyzer.identify_target_files(GameSystem.OBJECTS) == ["engine/objects.py"]
        assert analyzer.identify_target_files(GameSystem.PARSER) == ["src/game/actions"]

    def test_primary_cause_for_object_behavior(self, analyzer):
        from transcript_parity.models import GameSystem, IssueType

        cause = analyzer.identify_primary_cause(make_detail())

        assert cause.system == GameSystem.OBJECTS
        assert cause.issue_type == IssueType.INCORRECT_LOGIC
        assert cause.suggested_fix == "Update object action handlers in src/game/objects"

    def test_confidence_rules(self, analyzer):
        from transcript_parity.models import GameSystem

        detail = make_detail(similarity=0.9)
        cause = analyzer.identify_primary_cause(detail)
        assert analyzer.calculate_confidence(detail, cause) == pytest.approx(0.9)

        crowded = make_detail(similarity=0.3, systems=[
            GameSystem.MESSAGING, GameSystem.OBJECTS, GameSystem.INVENTORY, GameSystem.PARSER,
        ])
        assert analyzer.calculate_confidence(crowded, cause) == pytest.approx(0.6)

    def test_systemic_contributing_factor(self, analyzer):
        details = [make_detail(index=1), make_detail(index=2), make_detail(index=3)]

        factors = analyzer.identify_contributing_factors(details[0], details)

        assert factors[0].description == "Part of systemic issue affecting 3 commands"

    def test_priority_effort_risk(self, analyzer):
        from transcript_parity.models import FixEffort, FixPriority, RiskLevel

        detail = make_detail(severity="minor", similarity=0.97)
        root_cause = analyzer.analyze_root_cause(detail, [detail])

        assert analyzer.calculate_priority(detail, root_cause) == FixPriority.HIGH
        assert analyzer.estimate_effort(detail, root_cause) == FixEffort.MINIMAL
        assert analyzer.assess_regression_risk(detail, root_cause) == RiskLevel.LOW
        assert analyzer.estimate_improvement(detail) == 0.5

    def test_major_severity_priority(self, analyzer):
        from transcript_parity.models import FixPriority

        detail = make_detail(severity="major", similarity=0.6)
        root_cause = analyzer.analyze_root_cause(detail, [detail])

        assert analyzer.calculate_priority(detail, root_cause) == FixPriority.HIGH
        assert analyzer.estimate_improvement(detail) == 1.5

    @pytest.mark.parametrize("critical,major,expected", [
        (0, 0, "low"),
        (3, 0, "high"),
        (0, 11, "high"),
        (0, 6, "medium"),
        (6, 0, "critical"),
    ])
    def test_overall_risk(self, analyzer, critical, major, expected):
        details = [make_detail("critical") for _ in range(critical)]
        details += [make_detail("major", 0.6) for _ in range(major)]

        assert analyzer.assess_overall_risk(details).value == expected


# ============================================================
# TEST: Full Analysis
# ============================================================

class TestAnalyzeReport:
    """Tests for DeepAnalyzer.analyze_report."""

    def test_one_entry_per_difference(self, analyzer, diff_report, transcript_pair):
        reference, candidate = transcript_pair

        result = analyzer.analyze_report(diff_report, reference, candidate, "forest_walk")

        assert result.sequence_id == "forest_walk"
        assert len(result.differences) == len(diff_report.differences) == 2
        assert len(result.root_cause_analysis) == 2
        assert len(result.fix_recommendations) == 2
        assert result.metadata.total_differences == 2
        assert result.metadata.completeness == 100.0
        assert result.risk_assessment.value == "low"

    def test_detail_content(self, analyzer, diff_report, transcript_pair):
        from transcript_parity.models import ContextualFactorType, DifferenceType

        reference, candidate = transcript_pair
        result = analyzer.analyze_report(diff_report, reference, candidate, "forest_walk")

        take, north = result.differences
        assert take.difference_type == DifferenceType.OBJECT_BEHAVIOR
        assert north.difference_type == DifferenceType.STATE_LOGIC
        assert north.game_state.player_location == "Clearing"

        factor_types = [f.type for f in north.contextual_factors]
        assert ContextualFactorType.PREVIOUS_COMMAND in factor_types
        assert ContextualFactorType.GAME_STATE in factor_types
        assert ContextualFactorType.RANDOM_SEED in factor_types

        location = next(f for f in north.contextual_factors if f.type == ContextualFactorType.GAME_STATE)
        assert location.impact == "high"
        assert location.data == {"reference_location": "Forest", "candidate_location": "Clearing"}

    def test_follow_on_divergence_factor(self, analyzer, diff_report, transcript_pair):
        reference, candidate = transcript_pair
        result = analyzer.analyze_report(diff_report, reference, candidate, "forest_walk")

        descriptions = [c.description for c in result.root_cause_analysis[1].contributing_factors]
        assert "Follows a critical divergence at command 1" in descriptions
        assert result.root_cause_analysis[0].confidence == pytest.approx(0.6)

    def test_recommendations_ranked(self, analyzer, diff_report, transcript_pair):
        reference, candidate = transcript_pair
        result = analyzer.analyze_report(diff_report, reference, candidate, "forest_walk")

        ranks = [(r.priority.rank, r.estimated_improvement) for r in result.fix_recommendations]
        assert ranks == sorted(ranks, reverse=True)
        assert result.fix_recommendations[0].difference_index == 0
        assert result.fix_recommendations[0].target_files == ["src/game/objects", "src/game/data/objects"]

    def test_deterministic_and_non_mutating(self, analyzer, diff_report, transcript_pair):
        reference, candidate = transcript_pair
        before = diff_report.to_dict()

        first = analyzer.analyze_report(diff_report, reference, candidate, "forest_walk").to_dict()
        second = analyzer.analyze_report(diff_report, reference, candidate, "forest_walk").to_dict()

        for key in ("differences", "root_cause_analysis", "fix_recommendations", "risk_assessment"):
            assert first[key] == second[key]
        assert diff_report.to_dict() == before

    def test_empty_report(self, analyzer):
        from transcript_parity.models import DiffReport, DiffSummary, Transcript

        report = DiffReport("a", "b", 0, 0, 0, [], 100.0, DiffSummary())
        result = analyzer.analyze_report(report, Transcript("a", "ref"), Transcript("b", "cand"), "empty")

        assert result.differences == []
        assert result.fix_recommendations == []
        assert result.metadata.completeness == 100.0
