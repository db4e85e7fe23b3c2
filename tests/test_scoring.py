from dataclasses import replace

import pytest

from sitegrade.scanner.base import ScanContextLabel
from sitegrade.scanner.scoring import (
    apply_context,
    calc_security_score,
    contextual_cvss,
    grade_from_score,
    round_half_up,
)
from sitegrade.scanner.templates import build_finding, exposed_file_template_id, get_all_templates

TRAINING = ScanContextLabel.TRAINING
BUSINESS = ScanContextLabel.BUSINESS
GENERAL = ScanContextLabel.GENERAL


@pytest.mark.parametrize("score,grade", [
    (100, "A"), (90, "A"), (89, "B"), (80, "B"), (79, "C"),
    (70, "C"), (69, "D"), (60, "D"), (59, "F"), (0, "F"),
])
def test_grade_boundaries_are_closed_open(score, grade):
    assert grade_from_score(score) == grade


@pytest.mark.parametrize("context,bonus,expected", [
    (GENERAL, 0, 90),
    (GENERAL, 7, 97),
    (BUSINESS, 10, 100),
    (TRAINING, 0, 85),
    (TRAINING, 3, 88),
])
def test_zero_findings_is_base_plus_bonus(context, bonus, expected):
    assert calc_security_score([], context, bonus) == expected


def test_training_score_never_exceeds_ceiling():
    assert calc_security_score([], TRAINING, 10) == 88

    low = apply_context([build_finding("missing-permissions-policy")], TRAINING)
    # 85 - 1.08 * 4 + 10 = 90.68
    assert calc_security_score(low, TRAINING, 10) == 88


@pytest.mark.parametrize("context", [GENERAL, BUSINESS])
def test_non_training_contextual_cvss_equals_cvss(context):
    for template_id in get_all_templates():
        finding = build_finding(template_id)
        assert contextual_cvss(finding, context, "ctf training challenge") == finding.cvss_score


def test_training_missing_csp_scenario():
    [csp] = apply_context([build_finding("missing-csp")], TRAINING, "<h1>CTF</h1>")

    assert csp.contextual_cvss == 2.44
    assert csp.cvss_score == 6.1
    # 85 - 9.76 = 75.24
    assert calc_security_score([csp], TRAINING, 0) == 75
    assert calc_security_score([csp], TRAINING, 10) == 85


def test_training_vulnerability_needs_intentional_signal():
    xss = build_finding("reflected-xss")

    assert contextual_cvss(xss, TRAINING, "Welcome to the practice arena") == 2.64
    assert contextual_cvss(xss, TRAINING, "Welcome") == 8.8

    hinted = replace(xss, description="Deliberately reflected input")
    assert contextual_cvss(hinted, TRAINING, None) == 2.64


def test_training_other_categories_are_unchanged():
    server = build_finding("server-disclosure", server="nginx")
    cookie = build_finding("insecure-cookie")

    assert contextual_cvss(server, TRAINING, "ctf") == 2.7
    assert contextual_cvss(cookie, TRAINING, "ctf") == 5.4


def test_missing_header_title_outside_header_category():
    odd = replace(build_finding("server-disclosure"), title="Missing Expect-CT Header", cvss_score=5.0)

    assert contextual_cvss(odd, TRAINING) == 2.0


def test_contextual_cvss_never_exceeds_cvss():
    for context in ScanContextLabel:
        for finding in apply_context([build_finding(t) for t in get_all_templates()], context, "ctf"):
            assert 0 <= finding.contextual_cvss <= finding.cvss_score


def test_exposed_env_scenario_fails():
    findings = apply_context([
        build_finding("missing-hsts"),
        build_finding("missing-csp"),
        build_finding(exposed_file_template_id("/.env")),
    ], GENERAL)

    assert max(f.contextual_cvss for f in findings) == 9.5
    # 90 - 66.5 + bonus
    assert calc_security_score(findings, GENERAL, 0) == 24
    assert calc_security_score(findings, GENERAL, 10) == 34
    assert grade_from_score(calc_security_score(findings, GENERAL, 10)) == "F"


def test_worst_finding_drives_the_penalty():
    many_low = apply_context([build_finding("missing-referrer-policy")] * 10, GENERAL)
    one_low = apply_context([build_finding("missing-referrer-policy")], GENERAL)

    assert calc_security_score(many_low, GENERAL) == calc_security_score(one_low, GENERAL)


def test_rounds_half_up():
    assert round_half_up(44.5) == 45
    assert round_half_up(75.24) == 75
    # 90 - 6.5 * 7 = 44.5
    findings = apply_context([build_finding("missing-csrf")], GENERAL)
    assert calc_security_score(findings, GENERAL) == 45


def test_unscored_findings_fall_back_to_base_cvss():
    assert calc_security_score([build_finding("missing-hsts")], GENERAL) == 38
