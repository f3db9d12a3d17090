import pytest

from flowcraft.schemas import Workflow, WorkflowNode, Connection, WorkflowMetadata, Position


def make_workflow():
    return Workflow(
        nodes=[
            WorkflowNode(
                id="1",
                type="trigger",
                label="Start",
                position=Position(x=0, y=0),
                data={"method": "POST", "path": "/api/orders"},
            ),
            WorkflowNode(
                id="2",
                type="function",
                label="Transform",
                position=Position(x=250, y=-40),
                data={
                    "runtime": "python",
                    "code": "def main(event):\n    return event\n",
                    "timeout": 30,
                    "ratio": 0.5,
                    "enabled": True,
                    "tools": ["search", "fetch"],
                    "retry": {"attempts": 3, "backoff": "linear"},
                },
            ),
            WorkflowNode(
                id="3",
                type="agent",
                label="Reviewer",
                position=Position(x=500, y=120),
                data={"currentLLM": "gpt-4", "context": ["orders", "customers"]},
            ),
        ],
        connections=[
            Connection(id="c1", source="1", target="2"),
            Connection(id="c2", source="2", target="3"),
        ],
        metadata=WorkflowMetadata(
            name="Order Pipeline",
            version="2.1.0",
            description="Routes incoming orders",
            tags=["orders", "production"],
        ),
    )


@pytest.fixture
def workflow():
    return make_workflow()
