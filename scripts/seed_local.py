"""
Create the DynamoDB tables and S3 bucket the submission service expects.

Aimed at LocalStack; point AWS_ENDPOINT_URL elsewhere to target real AWS.
Run with ``python -m scripts.seed_local [--no-seed]``.
"""
import argparse
import os
import time

os.environ.setdefault("AWS_ENDPOINT_URL", "http://localhost:4566")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "test")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "test")

from submission_api.aws_clients import dynamodb_client, s3_client  # noqa: E402
from submission_api.config import load_settings  # noqa: E402


def _wait_ddb_active(ddb, table):
    for _ in range(40):
        if ddb.describe_table(TableName=table)["Table"]["TableStatus"] == "ACTIVE":
            return
        time.sleep(0.5)
    raise RuntimeError(f"DDB table {table} not ACTIVE in time")


def setup_resources(seed=True):
    settings = load_settings()
    s3 = s3_client(settings)
    ddb = dynamodb_client(settings)

    tables = {
        settings.submissions_table: {"hash": ("id", "S")},
        settings.tasks_table: {"hash": ("id", "S")},
        settings.users_table: {"hash": ("id", "S")},
        settings.submission_status_table: {"hash": ("parent_id", "S"), "range": ("case_id", "S")},
    }

    existing = {b["Name"] for b in s3.list_buckets().get("Buckets", [])}
    if settings.code_bucket not in existing:
        s3.create_bucket(Bucket=settings.code_bucket)
        print(f"created bucket {settings.code_bucket}")

    existing = set(ddb.list_tables().get("TableNames", []))
    for name, spec in tables.items():
        if name in existing:
            continue
        attr_defs = [{"AttributeName": spec["hash"][0], "AttributeType": spec["hash"][1]}]
        key_schema = [{"AttributeName": spec["hash"][0], "KeyType": "HASH"}]
        if "range" in spec:
            attr_defs.append({"AttributeName": spec["range"][0], "AttributeType": spec["range"][1]})
            key_schema.append({"AttributeName": spec["range"][0], "KeyType": "RANGE"})
        ddb.create_table(
            TableName=name,
            AttributeDefinitions=attr_defs,
            KeySchema=key_schema,
            BillingMode="PAY_PER_REQUEST",
        )
        _wait_ddb_active(ddb, name)
        print(f"created table {name}")

    if seed:
        ddb.put_item(
            TableName=settings.tasks_table,
            Item={
                "id": {"S": "aplusb"},
                "visible": {"BOOL": True},
                "type": {"S": "normal"},
                "fileName": {"L": [{"S": "main.py"}]},
            },
        )
        ddb.put_item(
            TableName=settings.tasks_table,
            Item={
                "id": {"S": "hidden"},
                "visible": {"BOOL": False},
                "type": {"S": "interactive"},
                "fileName": {"L": [{"S": "solution.cpp"}, {"S": "solution.h"}]},
            },
        )
        ddb.put_item(
            TableName=settings.users_table,
            Item={
                "id": {"S": "demo-uid"},
                "username": {"S": "demo"},
                "displayName": {"S": "Demo User"},
            },
        )
        print("seeded tasks 'aplusb', 'hidden' and user 'demo'")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--no-seed", action="store_true", help="create resources only")
    args = parser.parse_args()
    setup_resources(seed=not args.no_seed)
