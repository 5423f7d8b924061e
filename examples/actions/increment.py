"""Increment action for the demo workflow.

Deploy with: wsk action create increment examples/actions/increment.py
"""


def main(params: dict) -> dict:
    value = params.get("value", 0)
    increment = params.get("increment", 1)
    return {"value": value + increment}
