from typing import Literal

from pydantic import AliasChoices, BaseModel, Field


# Tool Input Models
class NavigateAction(BaseModel):
	url: str = Field(min_length=1, description='URL to navigate to')
	wait_until: Literal['domcontentloaded', 'load', 'networkidle'] = Field(
		default='domcontentloaded',
		validation_alias=AliasChoices('wait_until', 'waitUntil'),
		description='Load state to wait for',
	)


class ClickAction(BaseModel):
	selector: str = Field(min_length=1, description='CSS selector or accessibility notation, e.g. button "Submit"')
	force: bool = Field(default=False, description='Skip actionability checks')
	double: bool = Field(default=False, description='Double-click instead of single click')


class FillAction(BaseModel):
	selector: str = Field(min_length=1)
	value: str


class SelectAction(BaseModel):
	selector: str = Field(min_length=1)
	value: str
	by: Literal['value', 'label', 'index'] = Field(default='value', description='How to match the option')


class WaitAction(BaseModel):
	selector: str = Field(min_length=1)
	state: Literal['visible', 'hidden', 'attached', 'detached'] = 'visible'


class SnapshotAction(BaseModel):
	selector: str = Field(default='body', description='Root element of the accessibility snapshot')
	file: str | None = Field(default=None, description='Write the snapshot to this file instead of returning it')


class ScreenshotAction(BaseModel):
	path: str | None = Field(default=None, description='Output path (timestamped name in the working directory if omitted)')
	full_page: bool = Field(default=False, validation_alias=AliasChoices('full_page', 'fullPage'))
	selector: str | None = Field(default=None, description='Capture only this element')
	type: Literal['png', 'jpeg'] = 'png'


class EvaluateAction(BaseModel):
	script: str = Field(min_length=1, description='JavaScript expression or function to run in the page')


class GetTextAction(BaseModel):
	selector: str = Field(min_length=1)
	all: bool = Field(default=False, description='Return the text of every match')


class GetHtmlAction(BaseModel):
	selector: str = Field(min_length=1)
	outer: bool = Field(default=False, description='Include the element itself')


class PdfAction(BaseModel):
	path: str | None = None
	format: Literal['A4', 'Letter'] = 'A4'
	landscape: bool = False


class NoParamsAction(BaseModel):
	pass
