"""Tests for accessibility-notation to Playwright role selector conversion."""

import pytest

from pw_skill.selector import to_playwright_selector


@pytest.mark.parametrize(
	'selector,expected',
	[
		('link "Green Energy Fund"', 'role=link[name="Green Energy Fund"]'),
		('button "Submit"', 'role=button[name="Submit"]'),
		("heading 'Home'", 'role=heading[name="Home"]'),
		('textbox "Email"', 'role=textbox[name="Email"]'),
		('  combobox "Country"  ', 'role=combobox[name="Country"]'),
		('BUTTON "Go"', 'role=button[name="Go"]'),
	],
)
def test_role_notation_is_converted(selector, expected):
	assert to_playwright_selector(selector) == expected


@pytest.mark.parametrize(
	'selector',
	[
		'#submit',
		'div.card > a',
		'text=Sign in',
		'xpath=//button',
		'button',
		'widget "Foo"',
		'button Submit',
	],
)
def test_other_selectors_pass_through_unchanged(selector):
	assert to_playwright_selector(selector) == selector


def test_double_quotes_in_name_are_escaped():
	assert to_playwright_selector("""button 'Say "hi"'""") == 'role=button[name="Say \\"hi\\""]'


def test_multiword_and_multiline_names():
	assert to_playwright_selector('link "Read more\nabout us"') == 'role=link[name="Read more\nabout us"]'
