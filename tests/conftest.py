"""
Shared fixtures for StubTap tests.

Builds a fixture root mirroring a typical stub setup:

    default.json
    user_42.json                 (flat lookup)
    user/default.json
    user/user_123.json
    order/order_999.json         (no category default)
    payment/payment_555.json
    transaction/config.json      (delay 1500)
    transaction/default.json     (templated)
    transaction/transaction_TXN1.json
"""

import json
from pathlib import Path

import pytest


FIXTURES = {
    'default.json': {
        'status': 'success',
        'message': 'Default response - no matching file found'
    },
    'user_42.json': {
        'status': 'success',
        'user': {'id': '42', 'name': 'Flat Fred'}
    },
    'user/default.json': {
        'status': 'success',
        'message': 'Default user response'
    },
    'user/user_123.json': {
        'status': 'success',
        'user': {'id': '123', 'name': 'Alice'}
    },
    'order/order_999.json': {
        'status': 'success',
        'order': {'id': '999', 'items': [{'sku': 'A-1', 'quantity': 2}]}
    },
    'payment/payment_555.json': {
        'status': 'success',
        'payment': {'id': '555', 'status': 'completed'}
    },
    'transaction/config.json': {
        'delay': 1500
    },
    'transaction/default.json': {
        'transactionId': '{{request.transactionId}}',
        'status': 'SUCCESS',
        'message': 'Transaction {{request.transactionType}} processed successfully',
        'amount': '{{request.amount}}'
    },
    'transaction/transaction_TXN1.json': {
        'id': '{{request.transactionId}}'
    },
}


def write_fixture(root: Path, relative_path: str, content) -> Path:
    """Write a JSON fixture (or raw text) under root."""
    path = root / relative_path
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, str):
        path.write_text(content, encoding='utf-8')
    else:
        path.write_text(json.dumps(content, indent=2), encoding='utf-8')
    return path


@pytest.fixture
def fixture_root(tmp_path):
    """Fixture root populated with the standard stub tree."""
    root = tmp_path / 'responses'
    for relative_path, content in FIXTURES.items():
        write_fixture(root, relative_path, content)
    return root
