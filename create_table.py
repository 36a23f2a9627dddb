import json

import boto3
from botocore.exceptions import ClientError

from partnermatch.config import Settings

# === CONFIG ===
SETTINGS = Settings.from_env()


def profiles_table_spec(settings: Settings) -> dict:
    return {
        "TableName": settings.profiles_table,
        "BillingMode": "PAY_PER_REQUEST",
        "AttributeDefinitions": [
            {"AttributeName": "pk", "AttributeType": "S"},
            {"AttributeName": "gsi1pk", "AttributeType": "S"},
        ],
        "KeySchema": [{"AttributeName": "pk", "KeyType": "HASH"}],
        "GlobalSecondaryIndexes": [
            {
                "IndexName": settings.institution_index,
                "KeySchema": [{"AttributeName": "gsi1pk", "KeyType": "HASH"}],
                "Projection": {"ProjectionType": "ALL"},
            }
        ],
    }


def connections_table_spec(settings: Settings) -> dict:
    return {
        "TableName": settings.connections_table,
        "BillingMode": "PAY_PER_REQUEST",
        "AttributeDefinitions": [
            {"AttributeName": "pk", "AttributeType": "S"},
            {"AttributeName": "requesterId", "AttributeType": "S"},
            {"AttributeName": "recipientId", "AttributeType": "S"},
            {"AttributeName": "createdAt", "AttributeType": "S"},
        ],
        "KeySchema": [{"AttributeName": "pk", "KeyType": "HASH"}],
        "GlobalSecondaryIndexes": [
            {
                "IndexName": settings.requester_index,
                "KeySchema": [
                    {"AttributeName": "requesterId", "KeyType": "HASH"},
                    {"AttributeName": "createdAt", "KeyType": "RANGE"},
                ],
                "Projection": {"ProjectionType": "ALL"},
            },
            {
                "IndexName": settings.recipient_index,
                "KeySchema": [
                    {"AttributeName": "recipientId", "KeyType": "HASH"},
                    {"AttributeName": "createdAt", "KeyType": "RANGE"},
                ],
                "Projection": {"ProjectionType": "ALL"},
            },
        ],
    }


def create_tables(client, settings: Settings):
    """Create both tables; tables that already exist are left alone."""
    created = []
    for spec in (profiles_table_spec(settings), connections_table_spec(settings)):
        try:
            client.create_table(**spec)
            created.append(spec["TableName"])
        except ClientError as e:
            if e.response["Error"]["Code"] != "ResourceInUseException":
                raise
            print(f"Table {spec['TableName']} already exists")
    return created


if __name__ == "__main__":  # pragma: no cover
    client = boto3.client("dynamodb", region_name=SETTINGS.region)
    out = create_tables(client, SETTINGS)
    print(json.dumps({"created": out, "region": SETTINGS.region}))
