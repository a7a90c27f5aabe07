"""Convert accessibility-tree notation to Playwright role selectors.

Examples:
    link "Green Energy Fund"  ->  role=link[name="Green Energy Fund"]
    button "Submit"           ->  role=button[name="Submit"]
    heading 'Home'            ->  role=heading[name="Home"]

Anything else (CSS, xpath=, text=, ...) is passed through untouched.
"""

import re

ROLES = (
	'link',
	'button',
	'heading',
	'textbox',
	'checkbox',
	'radio',
	'combobox',
	'listbox',
	'option',
	'menuitem',
	'menu',
	'tab',
	'tabpanel',
	'img',
	'dialog',
	'alertdialog',
	'alert',
	'status',
	'cell',
	'row',
	'grid',
	'table',
	'list',
	'listitem',
	'navigation',
	'main',
	'banner',
	'contentinfo',
	'complementary',
	'form',
	'search',
	'article',
	'region',
)

# role "name" or role 'name'
ROLE_PATTERN = re.compile(rf'^({"|".join(ROLES)})\s+["\'](.+)["\']$', re.IGNORECASE | re.DOTALL)


def to_playwright_selector(selector: str) -> str:
	match = ROLE_PATTERN.match(selector.strip())
	if match is None:
		return selector

	role, name = match.groups()
	escaped_name = name.replace('"', '\\"')
	return f'role={role.lower()}[name="{escaped_name}"]'
