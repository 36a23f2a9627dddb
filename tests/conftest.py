import importlib.util
from pathlib import Path

import pytest
from botocore.exceptions import ClientError

from partnermatch.models import CourseEnrollment, Topic, UserProfile

ROOT = Path(__file__).resolve().parents[1]


def load_lambda(name: str):
    path = ROOT / "lambda" / f"{name}.py"
    spec = importlib.util.spec_from_file_location(name, path)
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)
    return mod


def course(course_id, name="", code="", description=None, topics=(), status="active"):
    return CourseEnrollment(
        course_id=course_id,
        code=code,
        name=name,
        description=description,
        enrollment_status=status,
        topics=[Topic(name=t, course_id=course_id) for t in topics],
    )


def profile(user_id, courses=(), institution="", program="", year=None, hours=0.0, **kw):
    return UserProfile(
        id=user_id,
        institution=institution,
        program_name=program,
        year_of_study=year,
        enrolled_courses=list(courses),
        total_study_hours=hours,
        **kw,
    )


def _conditional_failure(op: str) -> ClientError:
    return ClientError(
        {"Error": {"Code": "ConditionalCheckFailedException", "Message": "The conditional request failed"}},
        op,
    )


class FakeTable:
    """
    In-memory stand-in for a boto3 DynamoDB Table keyed on ``pk``.

    Supports the calls the repositories make: get/put/update item, equality
    queries on a GSI hash key, and scans.  ``page_size`` splits results into pages
    with ``LastEvaluatedKey`` so pagination loops get exercised.
    """

    def __init__(self, items=(), page_size=None):
        self.items = {it["pk"]: dict(it) for it in items}
        self.page_size = page_size
        self.calls = []

    def _page(self, rows, start):
        start = start or 0
        if not self.page_size:
            return {"Items": rows}
        chunk = rows[start:start + self.page_size]
        resp = {"Items": chunk}
        if start + self.page_size < len(rows):
            resp["LastEvaluatedKey"] = start + self.page_size
        return resp

    def get_item(self, Key):
        self.calls.append(("get_item", Key))
        item = self.items.get(Key["pk"])
        return {"Item": dict(item)} if item else {}

    def put_item(self, Item, ConditionExpression=None):
        self.calls.append(("put_item", Item))
        if ConditionExpression == "attribute_not_exists(pk)" and Item["pk"] in self.items:
            raise _conditional_failure("PutItem")
        self.items[Item["pk"]] = dict(Item)

    def update_item(self, Key, UpdateExpression, ExpressionAttributeValues,
                    ConditionExpression=None, ExpressionAttributeNames=None):
        self.calls.append(("update_item", Key))
        item = self.items.get(Key["pk"])
        vals = ExpressionAttributeValues
        if item is None or item.get("status") != vals.get(":pending", item.get("status")):
            raise _conditional_failure("UpdateItem")
        if ":r" in vals and item.get("recipientId") != vals[":r"]:
            raise _conditional_failure("UpdateItem")
        item["status"] = vals[":s"]
        item["updatedAt"] = vals[":u"]

    def query(self, IndexName, KeyConditionExpression, FilterExpression=None, ExclusiveStartKey=None, **kw):
        self.calls.append(("query", IndexName))
        expr = KeyConditionExpression.get_expression()
        key, value = expr["values"]
        rows = [dict(it) for it in self.items.values() if it.get(key.name) == value]
        return self._page(rows, ExclusiveStartKey)

    def scan(self, FilterExpression=None, ExclusiveStartKey=None, **kw):
        self.calls.append(("scan", None))
        return self._page([dict(it) for it in self.items.values()], ExclusiveStartKey)


class FailingTable(FakeTable):
    def _fail(self, op):
        raise ClientError(
            {"Error": {"Code": "ProvisionedThroughputExceededException", "Message": "slow down"}},
            op,
        )

    def query(self, *a, **kw):
        self._fail("Query")

    def scan(self, *a, **kw):
        self._fail("Scan")


@pytest.fixture
def fake_table():
    return FakeTable()
