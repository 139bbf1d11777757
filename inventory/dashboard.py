# inventory/dashboard.py

import streamlit as st
import requests
import json
import pandas as pd
from typing import List, Optional
from inventory.config import get_settings
from inventory.logger import configure_logging, get_logger

configure_logging()

# Create logger object
log = get_logger(__name__)
log.info("Streamlit dashboard is starting...")

API_URL = get_settings().api_url

SORT_OPTIONS = {
	"Default": ("id", "asc"),
	"Price (Asc)": ("price", "asc"),
	"Price (Desc)": ("price", "desc"),
	"A-Z": ("title", "asc"),
	"Z-A": ("title", "desc"),
}


def main():
	# Page settings
	st.set_page_config(
	page_title="Product Inventory",
	page_icon="📦",
	layout="centered"
	)

	st.title("Product Inventory")

	# Initialize session_states
	initialize_sessions()

	with st.sidebar:
		api_key_panel()

	if not st.session_state.api_key:
		st.info("Generate or paste an API key in the sidebar to browse products.")
		return

	st.sidebar.header("🔍 Filter&Order")
	filter_parameters()

	with st.sidebar:
		st.button("Reset Filter Parameters", on_click=reset_filter_parameters, type="primary")

	run_browse()


def api_key_panel():
	"""Sidebar controls to generate a key with the master key, or paste an existing one."""
	st.header("🔑 API Key")
	st.text_input("API key", key="api_key", type="password")

	with st.expander("Generate a new key"):
		st.text_input("Master key", type="password", key="master_key_input")
		st.selectbox("Valid for", ["1h", "1d", "7d", "2w"], index=1, key="expires_in")
		st.button("Generate", on_click=generate_key)

	if st.session_state.key_notice:
		level, text = st.session_state.key_notice
		if level == "success":
			st.success(text)
		else:
			st.error(text)


def generate_key():
	"""Button callback, runs before widgets are drawn so it may set the api_key widget value."""
	try:
		response = requests.post(
			f"{API_URL}/api/auth/generate-key",
			json={"expiresIn": st.session_state.expires_in, "masterKey": st.session_state.master_key_input},
			timeout=10
		)
	except requests.exceptions.RequestException as e:
		st.session_state.key_notice = ("error", f"API connection error: {e}")
		log.exception(f"API connection error while generating key. Exception {e}")
		return

	if response.status_code == 200:
		data = response.json()
		st.session_state.api_key = data["apiKey"]
		st.session_state.key_notice = ("success", f"Key valid until {data['expiresAt']}")
		log.info("API key generated from dashboard")
	else:
		st.session_state.key_notice = ("error", _error_message(response))
		log.warning(f"Key generation failed with status {response.status_code}")


def run_browse():
	"""Fetch the current page from /api/products and render it."""
	params = {
		"limit": st.session_state.page_size,
		"offset": st.session_state.page * st.session_state.page_size,
		"sort": st.session_state.sort_by,
		"order": st.session_state.order,
	}
	if st.session_state.categories:
		params["category"] = ",".join(st.session_state.categories)
	if st.session_state.min_price > 0:
		params["minPrice"] = st.session_state.min_price
	if st.session_state.max_price > 0:
		params["maxPrice"] = st.session_state.max_price
	if st.session_state.search.strip():
		params["search"] = st.session_state.search.strip()

	log.debug(f"Requesting products with params {params}")
	page = fetch("/api/products", params=params)
	if page is None:
		return

	pagination = page["pagination"]
	products = page["products"]

	with st.sidebar:
		st.markdown("---")
		st.metric("After Filters", pagination["total"])

	if not products:
		st.warning("No products match the current filter criteria")
		return

	display_products(products)
	page_navigation(pagination)

	with st.container():
		col1, col2 = st.columns([1,1])
		with col1:
			downloaded_json = download_datas(products, "json")
		with col2:
			downloaded_csv = download_datas(products, "csv")
	for downloaded in (downloaded_json, downloaded_csv):
		if downloaded:
			log.info(f"{downloaded} file has been downloaded")
			st.success(f"{downloaded} file has been downloaded")


def fetch(path: str, params: Optional[dict] = None):
	"""GET an API path with the session key. Shows the error and returns None on failure."""
	try:
		response = requests.get(
			f"{API_URL}{path}",
			params=params,
			headers={"x-api-key": st.session_state.api_key},
			timeout=10
		)
	except requests.exceptions.Timeout as e:
		st.error("API call timed out (client-side).")
		log.exception(f"Dashboard request Timeout for '{path}': {e}")
		return None
	except requests.exceptions.ConnectionError as e:
		st.error("Unable to connect to API (client-side).")
		log.exception(f"Dashboard connection error for '{path}': {e}")
		return None

	if response.status_code == 200:
		return response.json()
	if response.status_code == 401:
		st.error(f"{_error_message(response)}. Generate a new key in the sidebar.")
		log.warning(f"API rejected key for '{path}': {response.text}")
	else:
		st.error(f"Unexpected error: {response.status_code}.\n{_error_message(response)}")
		log.error(f"API returned unexpected status code {response.status_code} for '{path}'. Response: {response.text}")
	return None


def display_products(products: List[dict]):
	"""Display products in a consistent format."""
	for product in products:
		with st.container():
			col1, col2 = st.columns([1,3])

			with col1:
				if product["images"]:
					st.image(product["images"][0], width=150)
				else:
					st.write("🖼️ No image ")

			with col2:
				st.subheader(f"#{product['id']} {product['title']}")
				col2_1, col2_2 = st.columns(2)
				with col2_1:
					st.metric("Price", f"${product['price']:.2f}")
				with col2_2:
					st.metric("Category", product["category"])
				st.caption(product["description"])
			st.divider()


def page_navigation(pagination: dict):
	total_pages = max(pagination["totalPages"], 1)
	col1, col2, col3 = st.columns([1,2,1])
	with col1:
		st.button("← Previous", on_click=_change_page, args=(-1, total_pages), disabled=st.session_state.page == 0)
	with col2:
		st.markdown(f"Page {st.session_state.page + 1} of {total_pages} ({pagination['total']} products)")
	with col3:
		st.button("Next →", on_click=_change_page, args=(1, total_pages), disabled=st.session_state.page + 1 >= total_pages)


def filter_parameters():
	"""Display filter parameter controls in sidebar."""
	categories = fetch("/api/categories") or []
	st.sidebar.multiselect("Category", categories, key="categories", on_change=_reset_page)
	st.sidebar.text_input("Search", placeholder="Ex: chair", key="search", on_change=_reset_page)
	st.sidebar.number_input("Minimum Price ($)", min_value=0.0, step=1.0, key="min_price", on_change=_reset_page)
	st.sidebar.number_input("Maximum Price ($)", min_value=0.0, step=1.0, key="max_price", on_change=_reset_page)
	st.sidebar.selectbox("Sort", list(SORT_OPTIONS), key="sort_option", on_change=_reset_page)
	st.sidebar.select_slider("Page size", options=[5, 10, 20, 50], key="page_size", on_change=_reset_page)

	sort_by, order = SORT_OPTIONS.get(st.session_state.sort_option, ("id", "asc"))
	log.debug(f"Sort option set to: {sort_by}, order: {order}")
	st.session_state.sort_by = sort_by
	st.session_state.order = order


def download_datas(products: List[dict], data_type: str):
	"""
	Download datas as JSON or CSV format.

	Args:
		products: List[dict] : Products of the current page
		data_type: str : Datas download type. 'json', 'csv'
	"""
	if data_type == 'json':
		if st.download_button(
			label = "📥 Download Page as JSON File",
			data = json.dumps(products, indent=2, ensure_ascii=False),
			file_name = "products.json",
			mime = "application/json"
		):
			return "JSON"
	else:
		frame = pd.DataFrame(products)
		if "images" in frame:
			frame["images"] = frame["images"].apply(lambda urls: " ".join(urls))
		if st.download_button(
			label = "📥 Download Page as CSV File",
			data = frame.to_csv(index=False).encode("utf-8"),
			file_name = "products.csv",
			mime = "text/csv"
		):
			return "CSV"
	return None


def initialize_sessions():
	"""Initialize session state variables."""
	defaults = {
		"api_key": "",
		"key_notice": None,
		"categories": [],
		"search": "",
		"min_price": 0.0,
		"max_price": 0.0,
		"sort_option": "Default",
		"sort_by": "id",
		"order": "asc",
		"page_size": 10,
		"page": 0,
	}
	for key, value in defaults.items():
		if key not in st.session_state:
			st.session_state[key] = value
			log.debug(f"Session state '{key}' initialized.")


def reset_filter_parameters():
	st.session_state.categories = []
	st.session_state.search = ""
	st.session_state.min_price = 0.0
	st.session_state.max_price = 0.0
	st.session_state.sort_option = "Default"
	st.session_state.page = 0


def _reset_page():
	st.session_state.page = 0


def _change_page(step: int, total_pages: int):
	st.session_state.page = min(max(st.session_state.page + step, 0), total_pages - 1)


def _error_message(response) -> str:
	try:
		return response.json().get("message", response.text)
	except ValueError:
		return response.text


if __name__ == "__main__":
	main()
