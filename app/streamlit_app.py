"""Streamlit admin panel for the ShreeAdvaya storefront.

Features:
- Password login against /api/auth/login (token kept in session state)
- Products, categories and hero images staged locally, saved in one commit
- Collections edited directly (each save is its own commit)
- Site content (text, contact details, social links, policies)
- Image upload to the repository with raw URLs filled in automatically
"""

from __future__ import annotations

import base64
import logging
import os
import sys
from pathlib import Path

import pandas as pd
import streamlit as st
from dotenv import load_dotenv

# Ensure project root is on the path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from messages.templates import NOTIFICATIONS, SAVE_FAILED, SAVE_SUCCESS, UPLOAD_SUCCESS
from store.admin_client import AdminAPIClient
from store.errors import AuthError, StoreError
from store.models import Resource
from store.session import AdminSession

load_dotenv()
logging.basicConfig(level=logging.INFO)

# ============================================================================
# Page config
# ============================================================================

st.set_page_config(
    page_title="ShreeAdvaya Admin",
    layout="wide",
    initial_sidebar_state="expanded",
)

# ============================================================================
# Session state initialization
# ============================================================================


def init_session_state():
    defaults = {
        "api_base": os.environ.get("ADMIN_API_BASE", "http://localhost:3000/api"),
        "token": None,
        "admin": AdminSession(),
        "loaded": False,
        "last_uploads": [],
    }
    for key, val in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = val


init_session_state()
admin: AdminSession = st.session_state["admin"]


def api() -> AdminAPIClient:
    return AdminAPIClient(st.session_state["api_base"], token=st.session_state["token"])


def call(fn, *args, **kwargs):
    """Run an API call, surfacing errors as notifications."""
    client = api()
    try:
        return fn(client, *args, **kwargs)
    except AuthError as e:
        st.session_state["token"] = None
        st.error(str(e))
    except StoreError as e:
        st.error(str(e))
        logging.exception("Admin API error")
    finally:
        client.close()
    return None


def load_data():
    def fetch(client: AdminAPIClient):
        for resource in (Resource.PRODUCTS, Resource.CATEGORIES, Resource.HERO, Resource.COLLECTIONS):
            admin.load(resource, client.list_records(resource))
        admin.load(Resource.CONTENT, client.get_content())
        return True

    if call(fetch):
        st.session_state["loaded"] = True


def to_data_url(uploaded) -> str:
    encoded = base64.b64encode(uploaded.getvalue()).decode("ascii")
    return f"data:{uploaded.type};base64,{encoded}"


# ============================================================================
# Sidebar: login and pending changes
# ============================================================================

with st.sidebar:
    st.markdown("### Connection")
    st.session_state["api_base"] = st.text_input("API base URL", value=st.session_state["api_base"])

    if not st.session_state["token"]:
        with st.form("login"):
            password = st.text_input("Admin password", type="password")
            if st.form_submit_button("Login", type="primary"):
                token = call(lambda c: c.login(password))
                if token:
                    st.session_state["token"] = token
                    st.session_state["loaded"] = False
                    st.rerun()
    else:
        st.caption("Logged in.")
        if st.button("Logout"):
            st.session_state["token"] = None
            st.rerun()

    st.divider()
    st.markdown("##### Pending changes")
    st.metric("Unsaved", admin.pending_count())

    save_col, discard_col = st.columns(2)
    with save_col:
        if st.button("Save All Changes", type="primary", disabled=not admin.dirty):
            with st.spinner("Saving..."):
                try:
                    client = api()
                    try:
                        result = admin.flush(client.save_batch)
                    finally:
                        client.close()
                except StoreError as e:
                    # Pending changes stay staged for another attempt.
                    st.error(SAVE_FAILED.substitute(error=e))
                else:
                    sha = (result or {}).get("commitSha") or ""
                    st.success(SAVE_SUCCESS.substitute(short_sha=sha[:7] or "no changes"))
                    load_data()
    with discard_col:
        if st.button("Discard All", disabled=not admin.dirty):
            admin.reset()
            st.rerun()


st.title("ShreeAdvaya Admin")

if not st.session_state["token"]:
    st.info("Log in from the sidebar to manage the store.")
    st.stop()

if not st.session_state["loaded"]:
    load_data()

tab_products, tab_categories, tab_collections, tab_hero, tab_content, tab_uploads = st.tabs([
    "Products",
    "Categories",
    "Collections",
    "Hero Images",
    "Site Content",
    "Uploads",
])

# ============================================================================
# TAB: Products
# ============================================================================

with tab_products:
    products = admin.display_records(Resource.PRODUCTS)
    categories = admin.display_records(Resource.CATEGORIES)
    st.header(f"Products ({len(products)})")

    if products:
        frame = pd.DataFrame(products)
        columns = [c for c in ("id", "name", "category", "price", "createdAt", "updatedAt") if c in frame]
        st.dataframe(frame[columns], use_container_width=True, hide_index=True)

    options = ["(new product)"] + [p["id"] for p in products]
    selected = st.selectbox(
        "Edit product",
        options,
        format_func=lambda pid: pid if pid == "(new product)" else next(
            (p.get("name", pid) for p in products if p["id"] == pid), pid
        ),
    )
    current = next((p for p in products if p["id"] == selected), {})

    with st.form("product_form"):
        name = st.text_input("Name", value=current.get("name", ""))
        category_ids = [c["id"] for c in categories]
        category = st.selectbox(
            "Category",
            category_ids or [""],
            index=category_ids.index(current["category"]) if current.get("category") in category_ids else 0,
        )
        price = st.text_input("Price", value=str(current.get("price", "")))
        description = st.text_area("Description", value=current.get("description", ""))
        images = st.text_area(
            "Image URLs (one per line)",
            value="\n".join(current.get("images") or ([current["image"]] if current.get("image") else [])),
        )
        alt = st.text_input("Alt text", value=current.get("alt", ""))
        submitted = st.form_submit_button("Stage product", type="primary")

    if submitted:
        image_list = [u.strip() for u in images.splitlines() if u.strip()]
        if not name.strip():
            st.error("Product name is required")
        elif not image_list:
            st.error("Please upload at least one image or add an image URL")
        else:
            data = {
                "name": name.strip(),
                "category": category,
                "price": price.strip(),
                "description": description.strip(),
                "images": image_list,
                "alt": alt.strip(),
            }
            try:
                if current:
                    admin.stage_update(Resource.PRODUCTS, current["id"], data)
                    st.info(NOTIFICATIONS["update"].substitute(label=Resource.PRODUCTS.label))
                else:
                    admin.stage_create(Resource.PRODUCTS, data)
                    st.info(NOTIFICATIONS["create"].substitute(label=Resource.PRODUCTS.label))
            except StoreError as e:
                st.error(str(e))
            else:
                st.rerun()

    if current and st.button("Delete product", key="delete_product"):
        admin.stage_delete(Resource.PRODUCTS, current["id"])
        st.toast(NOTIFICATIONS["delete"].substitute(label=Resource.PRODUCTS.label))
        st.rerun()

# ============================================================================
# TAB: Categories
# ============================================================================

with tab_categories:
    categories = admin.display_records(Resource.CATEGORIES)
    st.header(f"Categories ({len(categories)})")

    for item in sorted(categories, key=lambda c: c.get("order") or 0):
        col_name, col_order, col_delete = st.columns([4, 1, 1])
        col_name.markdown(f"**{item.get('name', '')}**  \n`{item['id']}`")
        new_order = col_order.number_input(
            "Order", value=int(item.get("order") or 0), step=1, key=f"order_{item['id']}"
        )
        if new_order != (item.get("order") or 0):
            admin.stage_update(Resource.CATEGORIES, item["id"], {"name": item.get("name"), "order": int(new_order)})
            st.rerun()
        if col_delete.button("Delete", key=f"delete_cat_{item['id']}"):
            admin.stage_delete(Resource.CATEGORIES, item["id"])
            st.rerun()

    with st.form("category_form", clear_on_submit=True):
        cat_name = st.text_input("New category name")
        if st.form_submit_button("Stage category") and cat_name.strip():
            admin.stage_create(Resource.CATEGORIES, {"name": cat_name.strip()})
            st.rerun()

# ============================================================================
# TAB: Collections (saved immediately)
# ============================================================================

with tab_collections:
    collections = admin.original.get(Resource.COLLECTIONS) or []
    st.header(f"Collections ({len(collections)})")
    st.caption("Collection changes are saved immediately, one commit per change.")

    for collection in collections:
        with st.expander(f"{collection.get('name')} ({len(collection.get('subcategories') or [])} sub-categories)"):
            subs = collection.get("subcategories") or []
            sub_text = st.text_area(
                "Sub-categories (one per line)",
                value="\n".join(s["name"] for s in subs),
                key=f"subs_{collection['id']}",
            )
            col_save, col_delete = st.columns(2)
            if col_save.button("Save", key=f"save_col_{collection['id']}"):
                data = {"subcategories": [{"name": n.strip()} for n in sub_text.splitlines() if n.strip()]}
                if call(lambda c: c.update_collection(collection["id"], data)):
                    load_data()
                    st.rerun()
            if col_delete.button("Delete", key=f"delete_col_{collection['id']}"):
                call(lambda c: c.delete_collection(collection["id"]))
                load_data()
                st.rerun()

    with st.form("collection_form", clear_on_submit=True):
        col_name = st.text_input("New collection name")
        if st.form_submit_button("Add collection") and col_name.strip():
            if call(lambda c: c.create_collection({"name": col_name.strip(), "subcategories": []})):
                load_data()
                st.rerun()

# ============================================================================
# TAB: Hero images
# ============================================================================

with tab_hero:
    heroes = admin.display_records(Resource.HERO)
    st.header(f"Hero Images ({len(heroes)})")

    cols = st.columns(3)
    for i, hero in enumerate(heroes):
        with cols[i % 3]:
            if hero.get("image"):
                st.image(hero["image"], use_container_width=True)
            st.caption(hero["id"])
            if st.button("Remove", key=f"delete_hero_{hero['id']}"):
                admin.stage_delete(Resource.HERO, hero["id"])
                st.rerun()

    with st.form("hero_form", clear_on_submit=True):
        hero_url = st.text_input("Image URL")
        if st.form_submit_button("Stage hero image"):
            if not hero_url.strip():
                st.error("Please upload an image or provide an image URL")
            else:
                admin.stage_create(Resource.HERO, {"image": hero_url.strip()})
                st.rerun()

# ============================================================================
# TAB: Site content
# ============================================================================

with tab_content:
    content = admin.display_content()
    st.header("Site Content")
    social = content.get("social") or {}
    hero_text = content.get("hero") or {}
    policies = content.get("policies") or {}

    with st.form("content_form"):
        site_name = st.text_input("Site name", value=content.get("siteName", "ShreeAdvaya"))
        logo = st.text_input("Logo URL", value=content.get("logo", "assets/images/logo.svg"))
        hero_title = st.text_input("Hero title", value=hero_text.get("title", ""))
        hero_subtitle = st.text_input("Hero subtitle", value=hero_text.get("subtitle", ""))
        about = st.text_area("About", value=content.get("about", ""))
        c1, c2, c3 = st.columns(3)
        email = c1.text_input("Email", value=content.get("email", ""))
        phone = c2.text_input("Phone", value=content.get("phone", ""))
        whatsapp = c3.text_input("WhatsApp", value=content.get("whatsapp", ""))
        social_values = {
            key: st.text_input(key.title(), value=social.get(key, ""))
            for key in ("facebook", "instagram", "twitter", "youtube", "pinterest")
        }
        policy_titles = {
            "disclaimer": "Disclaimer",
            "shipping": "Shipping & Delivery",
            "returns": "Return & Exchange Policy",
            "refund": "Refund Policy",
        }
        policy_values = {
            key: st.text_area(title, value=(policies.get(key) or {}).get("content", ""))
            for key, title in policy_titles.items()
        }
        if st.form_submit_button("Stage content", type="primary"):
            admin.stage_content({
                "siteName": site_name.strip() or "ShreeAdvaya",
                "logo": logo.strip() or "assets/images/logo.svg",
                "hero": {"title": hero_title.strip(), "subtitle": hero_subtitle.strip()},
                "features": content.get("features") or [],
                "social": {k: v.strip() for k, v in social_values.items()},
                "about": about.strip(),
                "email": email.strip(),
                "phone": phone.strip(),
                "whatsapp": whatsapp.strip(),
                "policies": {
                    key: {"title": title, "content": policy_values[key].strip()}
                    for key, title in policy_titles.items()
                },
            })
            st.info(NOTIFICATIONS["update"].substitute(label=Resource.CONTENT.label))

# ============================================================================
# TAB: Uploads
# ============================================================================

with tab_uploads:
    st.header("Upload Images")
    folder = st.selectbox("Folder", ["images", "products", "hero"])
    files = st.file_uploader(
        "Images", type=["png", "jpg", "jpeg", "webp", "gif", "svg"], accept_multiple_files=True
    )
    if st.button("Upload", type="primary", disabled=not files):
        with st.spinner("Uploading..."):
            uploaded = call(lambda c: c.upload([to_data_url(f) for f in files], folder))
        if uploaded:
            st.session_state["last_uploads"] = uploaded
            st.success(UPLOAD_SUCCESS.substitute(count=len(uploaded)))

    for item in st.session_state["last_uploads"]:
        st.code(item["url"], language=None)
