"""
Counter Demo

The smallest useful Trellis app: a button that increments a counter and
a step size picked with a number input. Every click re-runs ``counter``
against this browser session's state; another browser tab gets its own
session and its own count.

Run this demo:
    python examples/counter_demo.py
"""

from trellis import App

app = App()


@app.page("/")
def counter(ui):
    ui.h1("Counter")

    step = ui.number_input(id="step", label="Step", default=1)

    def increment(ui):
        if ui.button(id="increment", text=f"+{step}"):
            ui.state.write("count", ui.state.read("count", 0) + step)

    def reset(ui):
        if ui.button(id="reset", text="Reset"):
            ui.state.write("count", 0)

    ui.columns(increment, reset)

    count = ui.state.read("count", 0)
    ui.p(f"Count: {count}")
    if count < 0:
        ui.alert("Below zero!", style="warning")


if __name__ == "__main__":
    from trellis import configure_logging

    configure_logging()
    app.run()
