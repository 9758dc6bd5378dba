import frame2flat.dedup as dedup


def _candidate(path, length, fingerprint, tokens=(), order=0, title="Engine Removal Procedure"):
    return dedup.DedupCandidate(
        path=path,
        strict_title=title,
        display_title=title,
        text_length=length,
        fingerprint=fingerprint,
        token_set=frozenset(tokens),
        order=order,
    )


def test_hamming_scenario_longest_is_canonical():
    shorter = _candidate("en/html/a.html", 480, 0b101, order=0)
    longer = _candidate("en/html/b.html", 500, 0b000, order=1)

    result = dedup.find_duplicates([shorter, longer])

    assert len(result.decisions) == 1
    decision = result.decisions[0]
    assert decision.title == "Engine Removal Procedure"
    assert decision.canonical_path == "en/html/b.html"
    assert decision.kept_paths == ["en/html/b.html"]
    assert decision.duplicate_paths == ["en/html/a.html"]
    assert decision.threshold_reason == "Hamming ≤ 3"
    assert decision.matches[0].hamming == 2
    assert result.duplicate_paths == {"en/html/a.html"}


def test_jaccard_fallback_scenario():
    tokens = [f"token{i:03d}" for i in range(100)]
    canonical = _candidate("en/html/a.html", 900, 0, tokens, order=0)
    member = _candidate("en/html/b.html", 890, 0x3FF, tokens[:99], order=1)

    result = dedup.find_duplicates([canonical, member])

    decision = result.decisions[0]
    assert decision.duplicate_paths == ["en/html/b.html"]
    assert decision.threshold_reason == "Jaccard ≥ 0.98"
    match = decision.matches[0]
    assert match.rule == dedup.RULE_JACCARD
    assert match.hamming == 10
    assert abs(match.jaccard - 0.99) < 1e-9


def test_distinct_member_kept_and_no_decision():
    canonical = _candidate("en/html/a.html", 900, 0, ["alpha", "beta"], order=0)
    member = _candidate("en/html/b.html", 100, 2**20 - 1, ["gamma", "delta"], order=1)

    result = dedup.find_duplicates([canonical, member])

    assert result.decisions == []
    assert result.duplicate_paths == set()
    assert result.canonical_by_path["en/html/b.html"] == "en/html/a.html"


def test_star_topology_does_not_compare_non_canonical_members():
    canonical = _candidate("en/html/c.html", 1000, 0, ["one"], order=0)
    x = _candidate("en/html/x.html", 800, 0xFFFF, ["two"], order=1)
    y = _candidate("en/html/y.html", 700, 0xFFFF, ["two"], order=2)

    result = dedup.find_duplicates([canonical, x, y])

    assert result.decisions == []


def test_length_tie_broken_by_scan_order():
    first = _candidate("en/html/z.html", 500, 0, order=0)
    second = _candidate("en/html/a.html", 500, 0, order=1)

    result = dedup.find_duplicates([second, first])

    assert result.decisions[0].canonical_path == "en/html/z.html"
    assert result.decisions[0].duplicate_paths == ["en/html/a.html"]


def test_mixed_rules_and_kept_members_in_one_group():
    tokens = [f"w{i}" for i in range(100)]
    canonical = _candidate("en/html/a.html", 1000, 0, tokens, order=0)
    near = _candidate("en/html/b.html", 990, 0b1, tokens, order=1)
    similar = _candidate("en/html/c.html", 980, 0xFFFF, tokens, order=2)
    distinct = _candidate("en/html/d.html", 970, 0xFFFF, ["other"], order=3)

    result = dedup.find_duplicates([canonical, near, similar, distinct])

    decision = result.decisions[0]
    assert decision.kept_paths == ["en/html/a.html", "en/html/d.html"]
    assert decision.duplicate_paths == ["en/html/b.html", "en/html/c.html"]
    assert decision.threshold_reason == "Hamming ≤ 3; Jaccard ≥ 0.98"


def test_singletons_and_separate_titles_produce_no_decisions():
    a = _candidate("en/html/a.html", 500, 0, order=0, title="Alpha")
    b = _candidate("en/html/b.html", 500, 0, order=1, title="Beta")

    result = dedup.find_duplicates([a, b])

    assert result.decisions == []
    assert result.canonical_by_path == {"en/html/a.html": "en/html/a.html", "en/html/b.html": "en/html/b.html"}


def test_empty_token_sets_count_as_identical():
    a = _candidate("en/html/a.html", 0, 0, order=0)
    b = _candidate("en/html/b.html", 0, 2**63, order=1)

    result = dedup.find_duplicates([a, b], hamming_threshold=0)

    assert result.decisions[0].threshold_reason == "Jaccard ≥ 0.98"


def test_custom_thresholds_and_report_serialization():
    a = _candidate("en/html/a.html", 500, 0, order=0)
    b = _candidate("en/html/b.html", 480, 0b11111, order=1)

    strict = dedup.find_duplicates([a, b], hamming_threshold=3, jaccard_threshold=1.1)
    assert strict.decisions == []

    loose = dedup.find_duplicates([a, b], hamming_threshold=5, jaccard_threshold=1.1)
    report = dedup.build_dedup_report(loose, 5, 1.1, fingerprints={"en/html/a.html": 0, "en/html/b.html": 0b11111})

    assert report["thresholds"] == {"hamming": 5, "jaccard": 1.1}
    group = report["groups"][0]
    assert group["canonical"] == "en/html/a.html"
    assert group["kept"] == ["en/html/a.html"]
    assert group["duplicates"] == ["en/html/b.html"]
    assert group["reason"] == "Hamming ≤ 5"
    assert group["fingerprints"]["en/html/b.html"] == "000000000000001f"
    assert report["failures"] == []
