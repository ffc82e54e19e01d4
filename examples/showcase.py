"""
Component Showcase

A tour of the Trellis components: every live component on the left,
the code that produced it on the right. A second page reproduces the
classic "chart with controls" dashboard, with a cached random dataset,
a rolling average toggle and Chart/Dataframe tabs.

Run this demo:
    python -m trellis examples/showcase.py
Then open http://127.0.0.1:4567
"""

from typing import List
import hashlib
import random

from trellis import App

app = App()

USERS = ["Alice", "Bob", "Charly"]


def navbar(ui):
    with ui.navbar() as nav:
        nav.brand("Trellis Showcase")
        nav.link("Showcase", "/")
        nav.link("Streamlit Example", "/streamlit-example")


def show_case(ui, title, description, code, block):
    ui.h2(title, id=title.lower().replace(" ", "-"))
    ui.p(description)
    ui.divider()
    ui.columns(block, lambda ui: ui.code(code, language="python"))


def clicker(ui):
    if ui.button(id="showcase_button", text="Click Me"):
        ui.state.write("showcase_clicks", ui.state.read("showcase_clicks", 0) + 1)
    ui.p(f"Clicked {ui.state.read('showcase_clicks', 0)} times.")


def text_and_display(ui):
    ui.h1("Heading 1")
    ui.p("This is a paragraph.")


def inputs(ui):
    name = ui.text_input(id="name", label="Name", default="World")
    size = ui.slider(id="size", label="Size", min=0, max=10)
    color = ui.selectbox(id="color", label="Color", options=["red", "green", "blue"])
    ui.p(f"Hello {name}: size {size:g}, color {color}")


@app.page("/")
def home(ui):
    navbar(ui)

    with ui.sidebar():
        ui.h3("Trellis")
        ui.p("An interactive web UI engine for Python.")
        ui.divider()
        ui.theme_toggle(id="theme_switch")
        ui.divider()
        ui.h4("On This Page")
        ui.link("Text & Display", "#text-&-display")
        ui.link("Input Widgets", "#input-widgets")
        ui.link("Layout", "#layout")

    ui.h1("Component Showcase")
    ui.p("Live, interactive components are on the left. The code to generate them is on the right.")

    show_case(ui, "Text & Display", "For displaying basic text content and media.",
              'ui.h1("Heading 1")\nui.p("This is a paragraph.")', text_and_display)
    show_case(ui, "Alerts", "For displaying non-blocking notifications.",
              'ui.alert("Success!", style="success")',
              lambda ui: ui.alert("This is a success message.", style="success"))
    show_case(ui, "LaTeX Equations", "Render mathematical notation using MathJax.",
              'ui.latex(r"x = \\frac{-b \\pm \\sqrt{b^2-4ac}}{2a}")',
              lambda ui: ui.latex(r"x = \frac{-b \pm \sqrt{b^2-4ac}}{2a}"))
    show_case(ui, "Code Blocks", "Displays pre-formatted text.",
              'ui.code("print(\'Hello\')", language="python")',
              lambda ui: ui.code("print('Hello, from a code block!')", language="python"))

    ui.h2("Input Widgets", id="input-widgets")
    ui.p("For capturing user input. All widgets are interactive and stateful.")

    show_case(ui, "Button", "Triggers an action when clicked.",
              'if ui.button(id="showcase_button", text="Click Me"):\n    ...', clicker)
    show_case(ui, "Inputs", "Text, sliders and selections keep their value across renders.",
              'name = ui.text_input(id="name", label="Name")', inputs)

    ui.h2("Layout", id="layout")
    ui.expander("Show more", lambda ui: ui.p("Expander bodies only run while open."))
    ui.tabs({
        "First": lambda ui: ui.p("First tab content."),
        "Second": lambda ui: ui.p("Second tab content."),
    })


@app.page("/test", interactive=False)
def test_page(ui):
    ui.h1("Test Page")
    ui.p("This page is rendered once, without a WebSocket.")


def rolling_average(rows: List[List[float]], window: int) -> List[List[float]]:
    """Column-wise mean over a sliding window; empty when too few rows."""
    if len(rows) < window:
        return []
    averaged = []
    for end in range(window, len(rows) + 1):
        chunk = rows[end - window:end]
        averaged.append([sum(col) / window for col in zip(*chunk)])
    return averaged


def user_color(user: str) -> str:
    return "#" + hashlib.md5(user.encode("utf-8")).hexdigest()[:6]


def random_data() -> List[List[float]]:
    rng = random.Random(42)
    return [[rng.gauss(0, 1) for _ in USERS] for _ in range(20)]


@app.page("/streamlit-example")
def streamlit_example(ui):
    navbar(ui)

    ui.h1("Streamlit Example")
    ui.p("This page demonstrates a simple interactive chart and data table.")

    controls = {}

    def control_block(ui):
        controls["users"] = ui.multi_select(id="users_multiselect", label="Users",
                                            options=USERS, default=USERS)
        controls["rolling"] = ui.checkbox(id="rolling_average_toggle",
                                          label="Enable 7-day Rolling Average")

    ui.form_group("Controls", control_block)

    selected = [u for u in controls["users"] if u in USERS]
    indices = [USERS.index(u) for u in selected]
    all_data = ui.cache("data_" + "_".join(selected), random_data)
    data = [[row[i] for i in indices] for row in all_data]
    if controls["rolling"]:
        data = rolling_average(data, 7)

    def chart_tab(ui):
        if not data:
            ui.alert("Not enough data for rolling average.", style="warning")
            return
        ui.chart(
            id="line_chart_example",
            data={
                "labels": list(range(1, len(data) + 1)),
                "datasets": [
                    {
                        "label": user,
                        "data": [row[i] for row in data],
                        "fill": False,
                        "borderColor": user_color(user),
                        "tension": 0.1,
                    }
                    for i, user in enumerate(selected)
                ],
            },
            options={"type": "line"},
        )

    def dataframe_tab(ui):
        if not data:
            ui.alert("Not enough data for rolling average.", style="warning")
            return
        ui.data_table(id="dataframe_example", columns=selected,
                      data=[[round(v, 4) for v in row] for row in data])

    ui.tabs({"Chart": chart_tab, "Dataframe": dataframe_tab})


if __name__ == "__main__":
    from trellis import configure_logging

    configure_logging()
    app.run()
