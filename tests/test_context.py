import pytest

from sitegrade.scanner.base import ScanContextLabel
from sitegrade.scanner.context import classify_context


@pytest.mark.parametrize("url", [
    "https://ctf.example.org",
    "http://localhost-dvwa.lab",
    "https://juice-shop.herokuapp.com/#/",
    "https://app.hackthebox.com",
    "https://WebGoat.example.net/WebGoat",
])
def test_training_platform_hosts(url):
    assert classify_context(url, "") == ScanContextLabel.TRAINING


@pytest.mark.parametrize("html", [
    "Welcome to the spring CTF!",
    "Our weekly hacking challenge",
    "Security Training portal",
    "A practice lab for web bugs",
    "This app is intentionally vulnerable.",
    "Contains an intentional vulnerability",
])
def test_training_keywords(html):
    assert classify_context("https://example.com", html) == ScanContextLabel.TRAINING


@pytest.mark.parametrize("html", [
    "Read our Privacy Policy",
    "terms of service",
    "Proceed to checkout",
    "Secure payment options",
    "Log in to continue",
    "Login",
    "Sign in with email",
])
def test_business_keywords(html):
    assert classify_context("https://shop.example.com", html) == ScanContextLabel.BUSINESS


def test_training_takes_priority_over_business():
    html = "CTF scoreboard. Proceed to checkout for swag."
    assert classify_context("https://example.com", html) == ScanContextLabel.TRAINING


def test_general_fallback():
    assert classify_context("https://example.com", "Just a blog about bread") == ScanContextLabel.GENERAL
    assert classify_context("https://example.com", None) == ScanContextLabel.GENERAL


def test_host_rule_ignores_path_and_word_boundaries_apply_to_content():
    assert classify_context("https://example.com/ctf", "") == ScanContextLabel.GENERAL
    assert classify_context("https://example.com", "abctfx") == ScanContextLabel.GENERAL


@pytest.mark.parametrize("html", [
    "Welcome to the blog index",
    "Our catalog includes 40 breads",
    "Loginess is not a word",
])
def test_login_wording_is_word_bounded(html):
    assert classify_context("https://example.com", html) == ScanContextLabel.GENERAL
