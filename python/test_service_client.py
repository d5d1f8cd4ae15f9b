#!/usr/bin/env python3
"""API Gateway / CloudWatch Logs クライアントのテスト"""
from unittest.mock import MagicMock

import pytest

from conftest import client_error
from s3_multipart.core.service_client import ServiceClient
from s3_multipart.models.outcome import ErrorType


@pytest.fixture
def clients():
    return {"apigateway": MagicMock(), "logs": MagicMock()}


@pytest.fixture
def service(clients):
    manager = MagicMock()
    manager.get_client.side_effect = clients.__getitem__
    return ServiceClient(manager)


def test_get_documentation_part(service, clients):
    clients["apigateway"].get_documentation_part.return_value = {
        "id": "part-1",
        "location": {"type": "API"},
        "properties": '{"description": "Pets API"}',
    }

    outcome = service.get_documentation_part("api-1", "part-1")

    assert outcome.is_success
    assert outcome.result.id == "part-1"
    assert outcome.result.properties == '{"description": "Pets API"}'
    clients["apigateway"].get_documentation_part.assert_called_once_with(
        restApiId="api-1", documentationPartId="part-1"
    )


def test_get_documentation_part_not_found(service, clients):
    clients["apigateway"].get_documentation_part.side_effect = client_error(
        "NotFoundException", "Invalid Documentation part identifier", 404, "GetDocumentationPart"
    )

    outcome = service.get_documentation_part("api-1", "missing")

    assert not outcome.is_success
    assert outcome.error.code == "NotFoundException"
    assert outcome.error.status_code == 404


def test_describe_subscription_filters_passes_optional_params(service, clients):
    clients["logs"].describe_subscription_filters.return_value = {"subscriptionFilters": []}

    service.describe_subscription_filters("/app", filter_name_prefix="err", limit=5)

    clients["logs"].describe_subscription_filters.assert_called_once_with(
        logGroupName="/app", filterNamePrefix="err", limit=5
    )


def test_list_all_subscription_filters_follows_next_token(service, clients):
    clients["logs"].describe_subscription_filters.side_effect = [
        {"subscriptionFilters": [{"filterName": "a"}], "nextToken": "t1"},
        {"subscriptionFilters": [{"filterName": "b"}]},
    ]

    outcome = service.list_all_subscription_filters("/app")

    assert [f.filter_name for f in outcome.result.subscription_filters] == ["a", "b"]
    assert outcome.result.next_token is None
    second_call = clients["logs"].describe_subscription_filters.call_args_list[1]
    assert second_call.kwargs["nextToken"] == "t1"


def test_list_all_subscription_filters_stops_on_error(service, clients):
    clients["logs"].describe_subscription_filters.side_effect = client_error(
        "ResourceNotFoundException", "log group missing", 400, "DescribeSubscriptionFilters"
    )

    outcome = service.list_all_subscription_filters("/missing")

    assert outcome.error.error_type is ErrorType.RESOURCE_NOT_FOUND
