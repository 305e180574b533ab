import pytest

from transaction_extractor.config import SegmentationSettings
from transaction_extractor.models import ReceiptSections
from transaction_extractor.reconstruction import AmountPolicy
from transaction_extractor.segmentation import (
    BoundarySegmenter,
    ProximityClusterSegmenter,
    SectionDetector,
    get_segmenter,
)
from transaction_extractor.utils import split_lines


@pytest.fixture
def boundary_segmenter(thresholds, tables):
    return BoundarySegmenter(AmountPolicy(thresholds), SegmentationSettings(strategy="boundary"), tables)


def test_statement_boundaries(boundary_segmenter, statement_lines, statement_tokens):
    boundaries = boundary_segmenter.segment(statement_lines, statement_tokens)
    assert [(b.start_index, b.end_index) for b in boundaries] == [(8, 15), (15, len(statement_lines))]


def test_header_lines_are_not_starts(boundary_segmenter, statement_tokens):
    starts = boundary_segmenter.candidate_starts(statement_tokens)
    assert 5 not in starts  # From Date
    assert 6 not in starts  # To Date
    assert 7 not in starts  # column header


def test_starts_are_monotonic_and_separated(boundary_segmenter, pattern_extractor):
    text = "\n".join(f"{day:02d}-Sep-2025\nRAAST\n{day},000.00" for day in range(1, 16))
    lines = split_lines(text)
    starts = boundary_segmenter.accepted_starts(pattern_extractor.extract(lines))
    assert len(starts) > 1
    for previous, current in zip(starts, starts[1:]):
        assert current > previous
        assert current - previous > 5


def test_boundaries_do_not_overlap(boundary_segmenter, statement_lines, statement_tokens):
    boundaries = boundary_segmenter.segment(statement_lines, statement_tokens)
    for left, right in zip(boundaries, boundaries[1:]):
        assert left.end_index <= right.start_index
    for b in boundaries:
        assert all(b.start_index <= t.source_line_index < b.end_index for t in b.member_tokens)


def test_no_starts_means_no_boundaries(boundary_segmenter, pattern_extractor):
    lines = split_lines("hello\nworld")
    assert boundary_segmenter.segment(lines, pattern_extractor.extract(lines)) == []


def test_proximity_clusters_never_share_tokens(thresholds, tables, statement_lines, statement_tokens):
    segmenter = ProximityClusterSegmenter(AmountPolicy(thresholds), SegmentationSettings(cluster_radius=8), tables)
    clusters = segmenter.segment(statement_lines, statement_tokens)
    assert clusters
    seen = set()
    for cluster in clusters:
        assert cluster.tokens("amount")
        for token in cluster.member_tokens:
            assert id(token) not in seen
            seen.add(id(token))
        assert cluster.start_index == min(t.source_line_index for t in cluster.member_tokens)
        assert cluster.end_index == max(t.source_line_index for t in cluster.member_tokens) + 1


def test_proximity_first_amount_wins(thresholds, tables, pattern_extractor):
    lines = split_lines("5,000.00\n6,000.00")
    segmenter = ProximityClusterSegmenter(AmountPolicy(thresholds), SegmentationSettings(cluster_radius=8), tables)
    clusters = segmenter.segment(lines, pattern_extractor.extract(lines))
    assert len(clusters) == 1
    assert clusters[0].member_tokens[0].normalized_value == 5000.0


def test_cluster_radius_is_clamped():
    assert SegmentationSettings(cluster_radius=3).cluster_radius == 8
    assert SegmentationSettings(cluster_radius=40).cluster_radius == 25


def test_get_segmenter():
    assert isinstance(get_segmenter("boundary"), BoundarySegmenter)
    assert isinstance(get_segmenter("PROXIMITY"), ProximityClusterSegmenter)
    with pytest.raises(ValueError):
        get_segmenter("columns")


def test_section_detector_markers(tables):
    lines = split_lines("From\nALI KHAN\nTo\nSARA BUTT\nPKR 5,000\nTID: 42")
    sections = SectionDetector(tables).detect(lines)
    assert sections == ReceiptSections(from_index=0, to_index=2, amount_index=4, date_index=None,
                                       transaction_id_index=5)


def test_section_detector_single_marker(tables):
    sections = SectionDetector(tables).detect(split_lines("Sent by\nALI KHAN\nSARA BUTT\nRs. 2,500"))
    assert sections.from_index == 0
    assert sections.to_index is None
    assert sections.amount_index == 3


def test_section_labels_fuzzy_only_when_long():
    assert SectionDetector.matches_label("Beneficiery", "Beneficiary")
    assert SectionDetector.matches_label("to:", "To")
    assert not SectionDetector.matches_label("Tp", "To")
    assert not SectionDetector.matches_label("Total Amount", "To")
