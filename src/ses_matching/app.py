"""
UI layer
Purpose: Streamlit-only glue. Renders the form, collects field values, and
delegates register/search to MatchingController. All decisions about filters,
payloads and result shaping live outside this file so they can be unit tested
without Streamlit.

Run with:
    streamlit run src/ses_matching/app.py [-- --config-name mock]
"""

import argparse
import asyncio
import sys

import streamlit as st

from ses_matching.config import load_config, load_secrets_into_env
from ses_matching.controller import FormState, MatchingController
from ses_matching.logging_setup import configure_logging
from ses_matching.models import Action, Category

CATEGORY_LABELS = {
    Category.ENGINEER: "Engineer",
    Category.PROJECT: "Project",
}


def _config_name() -> str:
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument("--config-name", default="default")
    args, _ = parser.parse_known_args(sys.argv[1:])
    return args.config_name


# ---------------------------
# Page config
# ---------------------------
st.set_page_config(page_title="SES Matching", page_icon="🔎", layout="centered")

# ---------------------------
# Session state init
# ---------------------------
st_session = st.session_state
if "controller" not in st_session:
    configure_logging("INFO")
    load_secrets_into_env()
    st_session.controller = MatchingController.from_config(load_config(_config_name()))
controller: MatchingController = st_session.controller
st_session.setdefault("form_state", controller.initial_state())


def _publish(state: FormState) -> None:
    st_session.form_state = state


def run_action(action: Action) -> None:
    """Send the current field values through the controller and keep the new state."""
    state: FormState = st_session.form_state
    state = state.edit(
        content=st_session.content_input,
        id=st_session.id_input,
        category=st_session.get("category_input") if controller.categories_enabled else None,
    )
    with st.spinner("Processing..."):
        st_session.form_state = asyncio.run(
            controller.handle_action(state, action, on_change=_publish)
        )


# ---------------------------
# Form
# ---------------------------
st.title("SES Matching")

state: FormState = st_session.form_state

if controller.categories_enabled:
    options = list(Category)
    st.radio(
        "Entry type",
        options,
        index=options.index(state.category or controller.form_config.default_category),
        format_func=lambda c: CATEGORY_LABELS[c],
        horizontal=True,
        key="category_input",
    )

st.text_input(
    "Engineer ID or project ID",
    value=state.id,
    placeholder="Enter an ID",
    key="id_input",
)
content = st.text_area(
    "Content",
    value=state.content,
    height=120,
    placeholder="Enter a message",
    key="content_input",
)

disabled = state.is_busy or controller.is_busy or not content
col_register, col_search = st.columns(2)
with col_register:
    if st.button("Register", disabled=disabled, use_container_width=True, type="primary"):
        run_action(Action.REGISTER)
with col_search:
    if st.button("Search", disabled=disabled, use_container_width=True):
        run_action(Action.SEARCH)

response = st_session.form_state.last_response
if response is not None:
    st.subheader("Response")
    st.json(response.model_dump(mode="json"))
