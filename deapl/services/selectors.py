# deapl/services/selectors.py
"""
UI selectors for the DeepL web translator, one table per markup revision.

The translator page changes its markup without notice. Everything the page
driver queries lives here so that adapting to a redesign means registering
a new table (plus any changed choreography), not editing the driver.
"""

import logging
from dataclasses import dataclass

# Module logger
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectorTable:
    """Symbolic UI action -> CSS selector for one page revision."""

    url: str

    # Interstitials (cookie consent, onboarding/promo dialogs)
    cookie_banner_dismiss: str
    dialog_dismiss: tuple[str, ...]

    # Present while a translation request is in flight
    translation_busy: str

    # Language menus; option selectors are keyed by page language code
    source_language_button: str
    target_language_button: str
    language_listbox: str
    language_option_template: str

    # Text areas
    source_input: str
    target_output: str

    # Formality switch
    formality_toggler: str
    formality_switch: str
    formality_menu: str
    formal_option: str
    informal_option: str
    # Classes that force the formality switch open when it hides on hover-out
    formality_open_classes: tuple[str, ...] = ()

    def source_language_option(self, code: str) -> str:
        return self.language_option_template.format(listbox=self.language_listbox, code=code)

    def target_language_option(self, code: str) -> str:
        return self.language_option_template.format(listbox=self.language_listbox, code=code)

    @property
    def interstitial_dismiss(self) -> tuple[str, ...]:
        """All dismiss controls, probed in order"""
        return (self.cookie_banner_dismiss,) + tuple(self.dialog_dismiss)


# Classic layout: <textarea> based, "lmt__" class names and dl-test attributes
LMT_TEXTAREA = SelectorTable(
    url="https://www.deepl.com/translator",
    cookie_banner_dismiss=".dl_cookieBanner--buttonSelected",
    dialog_dismiss=(
        'button[dl-test="modal-close-button"]',
        '[role="dialog"] button[aria-label="Close"]',
    ),
    translation_busy=".lmt.lmt--active_translation_request",
    source_language_button='button[dl-test="translator-source-lang-btn"]',
    target_language_button='button[dl-test="translator-target-lang-btn"]',
    language_listbox='[role="listbox"]',
    language_option_template='{listbox} [dl-test="translator-lang-option-{code}"]',
    source_input=".lmt__source_textarea",
    target_output=".lmt__target_textarea",
    formality_toggler=".lmt__formalitySwitch__toggler",
    formality_switch=".lmt__formalitySwitch",
    formality_menu=".lmt__formalitySwitch__menu",
    formal_option=".lmt__formalitySwitch__menu_item_container:nth-child(1) .lmt__formalitySwitch__menu_item",
    informal_option=".lmt__formalitySwitch__menu_item_container:nth-child(2) .lmt__formalitySwitch__menu_item",
    formality_open_classes=(
        "dl_visible",
        "dl_visible_2",
        "lmt__formalitySwitch--is-open_0",
        "lmt__formalitySwitch--is-open",
    ),
)

# Newer layout: <d-textarea> web components addressed through data-testid
D_TEXTAREA = SelectorTable(
    url="https://www.deepl.com/en/translator",
    cookie_banner_dismiss='button[data-testid="cookie-banner-strict-accept-selected"]',
    dialog_dismiss=(
        '[role="dialog"] button[aria-label="Close"]',
        'button[data-testid="modal-close-button"]',
    ),
    translation_busy='[data-testid="translator-target-input"][aria-busy="true"]',
    source_language_button='button[data-testid="translator-source-lang-btn"]',
    target_language_button='button[data-testid="translator-target-lang-btn"]',
    language_listbox='[role="listbox"]',
    language_option_template='{listbox} [data-testid="translator-lang-option-{code}"]',
    source_input='d-textarea[data-testid="translator-source-input"]',
    target_output='d-textarea[data-testid="translator-target-input"]',
    formality_toggler='button[data-testid="translator-formality-button"]',
    formality_switch='[data-testid="translator-formality-switch"]',
    formality_menu='[data-testid="translator-formality-menu"]',
    formal_option='[data-testid="translator-formality-menu"] [data-testid="formality-formal"]',
    informal_option='[data-testid="translator-formality-menu"] [data-testid="formality-informal"]',
)

DEFAULT_SELECTOR_VERSION = "lmt-textarea"

_SELECTOR_TABLES: dict[str, SelectorTable] = {
    "lmt-textarea": LMT_TEXTAREA,
    "d-textarea": D_TEXTAREA,
}


def register_selector_table(name: str, table: SelectorTable, replace: bool = False) -> None:
    """
    Register a selector table for a page revision.

    Args:
        name: Revision name (used by DEAPL_SELECTOR_VERSION)
        table: Selector table
        replace: Allow overwriting an existing revision

    Raises:
        ValueError: If the name is taken and replace is False
    """
    if name in _SELECTOR_TABLES and not replace:
        raise ValueError(f"Selector table {name!r} is already registered")
    _SELECTOR_TABLES[name] = table
    logger.debug("Registered selector table: %s", name)


def available_selector_versions() -> list[str]:
    return sorted(_SELECTOR_TABLES)


def get_selector_table(name: str | None = None) -> SelectorTable:
    """Look up a selector table by revision name (default revision when None)."""
    key = name or DEFAULT_SELECTOR_VERSION
    try:
        return _SELECTOR_TABLES[key]
    except KeyError:
        raise KeyError(
            f"Unknown selector version {key!r}; available: {', '.join(available_selector_versions())}"
        ) from None
