"""Square action for the demo workflow.

Deploy with: wsk action create square examples/actions/square.py
"""


def main(params: dict) -> dict:
    value = params.get("value", 0)
    return {"value": value * value}
