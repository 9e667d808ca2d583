import os
import atexit
import logging

import dash
from dash import html, dcc, dash_table
from dash.dependencies import Input, Output, State
import dash_leaflet as dl
import dash_bootstrap_components as dbc

from devmap.errors import NoDeveloperData
from devmap.listing import SORT_KEYS
from devmap.logs import setup_logging
from devmap.resolver import LocationResolver, load_cache, nominatim_geocoder
from devmap.runner import BackgroundLoop
from devmap.session import Session
from devmap.settings import Settings
from devmap.sources import open_source
from devmap.viewport import WORLD, Bounds

_LOGGER = logging.getLogger("devmap.app")

# ──────────────────────────────────────────────────────────────────────────────
# 1. SESSION & INITIAL LOAD
# ──────────────────────────────────────────────────────────────────────────────
DATA_ROOT    = os.environ.get("DEVMAP_DATA", ".")
CACHE_PATH   = os.environ.get("DEVMAP_CACHE", "geocoded_cache.json")
USE_GEOCODER = os.environ.get("DEVMAP_GEOCODER", "") == "1"

setup_logging(verbose=os.environ.get("DEVMAP_VERBOSE", "") == "1")

settings = Settings.from_env()
resolver = LocationResolver(
    cache=load_cache(CACHE_PATH),
    geocoder=nominatim_geocoder("github_developers_map") if USE_GEOCODER else None,
)
session = Session(open_source(DATA_ROOT), settings, resolver)

# Callbacks run on Dash worker threads; all session work happens on this loop.
loop = BackgroundLoop()


def run(coro):
    return loop.submit(coro)


@atexit.register
def shutdown():
    if loop.running:
        run(session.close())
        loop.stop()


def load_data():
    try:
        run(session.refresh_data())
    except NoDeveloperData as exc:
        _LOGGER.error("Initial data load failed: %s", exc)


load_data()

# ──────────────────────────────────────────────────────────────────────────────
# 2. BASEMAP URL
# ──────────────────────────────────────────────────────────────────────────────
OSM_BASEMAP = "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png"

# ──────────────────────────────────────────────────────────────────────────────
# 3. DASH SETUP
# ──────────────────────────────────────────────────────────────────────────────
app = dash.Dash(
    __name__,
    external_stylesheets=[dbc.themes.FLATLY],
    suppress_callback_exceptions=True
)
server = app.server
app.title = "GitHub Developers World Map"

# ──────────────────────────────────────────────────────────────────────────────
# 4. LAYOUT
# ──────────────────────────────────────────────────────────────────────────────
app.layout = dbc.Container(fluid=True, children=[

    dcc.Store(id="data_version", data=0),

    # Page title + readout
    dbc.Row([
        dbc.Col(html.H1(
            "GitHub Developers World Map",
            style={"fontSize":"2.2rem","fontWeight":"300"}
        ), md=7),
        dbc.Col(html.Div(id="count", className="text-end"), md=3),
        dbc.Col(dbc.Button(
            "Refresh", id="refresh",
            color="secondary", outline=True, className="w-100"
        ), md=2),
    ], className="my-4 align-items-center"),

    html.Div(id="notice"),

    # Map / list toggle
    dcc.Tabs(id="tabs", value="map", children=[
        dcc.Tab(label="Map View", value="map"),
        dcc.Tab(label="List View", value="list")
    ]),

    html.Div(id="map_container", className="mt-3", children=[
        html.P("Zoom in to load more developers in specific regions",
               className="text-muted"),
        dl.Map(
            id="map", center=[20,0], zoom=2, children=[
                dl.TileLayer(url=OSM_BASEMAP, maxZoom=18,
                             attribution="&copy; OpenStreetMap contributors"),
                dl.LayerGroup(id="markers"),
            ],
            style={
                "width":"100%","height":"70vh",
                "borderRadius":"4px",
                "boxShadow":"2px 2px 5px rgba(0,0,0,0.1)"
            }
        ),
    ]),

    html.Div(id="list_container", className="mt-3", style={"display":"none"}, children=[
        dbc.Row([
            dbc.Col([
                dbc.Label("Sort by", className="fw-bold"),
                dcc.Dropdown(
                    id="sort_select",
                    options=[{"label":v,"value":k} for k, v in SORT_KEYS.items()],
                    value="total_stars", clearable=False
                ),
            ], md=3),
            dbc.Col([
                dbc.Label("Search", className="fw-bold"),
                dcc.Input(
                    id="global_search",
                    placeholder="Name, login, bio, location or company…",
                    type="text", debounce=True,
                    className="form-control"
                ),
            ], md=9),
        ], className="mb-3"),
        dash_table.DataTable(
            id="developer_table",
            columns=[
                {"name":"#","id":"rank"},
                {"name":"Developer","id":"name"},
                {"name":"Login","id":"login"},
                {"name":"Location","id":"location"},
                {"name":"Stars","id":"total_stars"},
                {"name":"Followers","id":"followers"},
                {"name":"Repos","id":"public_repos"},
                {"name":"Forks","id":"total_forks"},
                {"name":"Languages","id":"languages"},
                {"name":"Profile","id":"profile","presentation":"markdown"},
            ],
            page_size=25,
            style_table={"overflowX":"auto"},
            style_header={"backgroundColor":"#f8f9fa",
                          "fontWeight":"bold"}
        )
    ]),

], style={"font-family":"Arial, sans-serif"})

# ──────────────────────────────────────────────────────────────────────────────
# 5. VIEW TOGGLE
# ──────────────────────────────────────────────────────────────────────────────
@app.callback(Output("map_container","style"),
              Output("list_container","style"),
              Input("tabs","value"))
def toggle_view(tab):
    if tab == "list":
        return {"display":"none"}, {}
    return {}, {"display":"none"}

# ──────────────────────────────────────────────────────────────────────────────
# 6. REFRESH
# ──────────────────────────────────────────────────────────────────────────────
@app.callback(
    Output("data_version","data"),
    Input("refresh","n_clicks"),
    State("data_version","data"),
    prevent_initial_call=True
)
def refresh_data(_, version):
    load_data()
    return (version or 0) + 1

# ──────────────────────────────────────────────────────────────────────────────
# 7. MAP MARKERS & COUNT
# ──────────────────────────────────────────────────────────────────────────────
def marker_popup(dev):
    lines = [html.Strong(dev.display_name), html.Br(),
             f"{dev.followers:,} followers", html.Br(),
             dev.location or ""]
    if dev.company:
        lines += [html.Br(), dev.company]
    if dev.html_url:
        lines += [html.Br(), html.A("View on GitHub →", href=dev.html_url, target="_blank")]
    return dl.Popup(html.Div(lines))


def count_readout():
    shown, loaded, batches = loop.call(session.counts)
    return [
        html.Div(f"{shown:,} developers shown", className="fw-bold"),
        html.Div(f"{loaded:,} loaded • {batches} batches", className="text-muted"),
    ]


@app.callback(
    Output("markers","children"),
    Output("count",  "children"),
    Output("notice", "children"),
    Input("map","bounds"),
    Input("map","zoom"),
    Input("data_version","data")
)
def update_map(bounds, zoom, _version):
    if not len(session.store):
        return [], count_readout(), dbc.Alert(
            "No developer data available. Please check if data files exist.",
            color="danger"
        )

    view = Bounds.from_leaflet(bounds) if bounds else WORLD
    markers = run(session.on_viewport_change(view, zoom))

    notices = loop.call(session.pop_notices)
    notice = [
        dbc.Alert(msg, color="warning", dismissable=True, duration=5000)
        for msg in notices
    ]

    children = [
        dl.Marker(
            id=f"marker-{m.login}",
            position=[m.lat, m.lng],
            children=[dl.Tooltip(m.developer.display_name), marker_popup(m.developer)]
        )
        for m in markers
    ]
    return children, count_readout(), notice

# ──────────────────────────────────────────────────────────────────────────────
# 8. LIST VIEW
# ──────────────────────────────────────────────────────────────────────────────
@app.callback(
    Output("developer_table","data"),
    Input("sort_select","value"),
    Input("global_search","value"),
    Input("tabs","value"),
    Input("data_version","data")
)
def update_list(sort_key, search, tab, _version):
    if tab != "list":
        return dash.no_update
    devs = loop.call(session.list_view, sort_key or "total_stars", search or "")
    return [
        {
            "rank": i + 1,
            "name": dev.display_name,
            "login": "@" + dev.login,
            "location": dev.location or "Unknown",
            "total_stars": dev.total_stars,
            "followers": dev.followers,
            "public_repos": dev.public_repos,
            "total_forks": dev.total_forks,
            "languages": ", ".join(dev.top_languages),
            "profile": f"[GitHub]({dev.html_url})" if dev.html_url else "",
        }
        for i, dev in enumerate(devs)
    ]

# ──────────────────────────────────────────────────────────────────────────────
# 9. RUN
# ──────────────────────────────────────────────────────────────────────────────
if __name__ == "__main__":
    app.run(debug=True, host="0.0.0.0")
