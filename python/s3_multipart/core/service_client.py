"""S3以外の隣接サービス (API Gateway ドキュメント, CloudWatch Logs)"""
from typing import Any, Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError

from ..models.outcome import ErrorType, Outcome
from ..models.results import DescribeSubscriptionFiltersResult, DocumentationPartResult
from ..utils.logger import LoggerManager
from .object_store import store_error_from_exception
from .s3_client import ClientManager


class ServiceClient:
    """API Gateway / CloudWatch Logs の読み取り操作"""

    def __init__(self, client_manager: ClientManager):
        self.client_manager = client_manager
        self.logger = LoggerManager.get_logger("service")

    def _call(self, service_name: str, operation: str, parser, **params) -> Outcome:
        client = self.client_manager.get_client(service_name)
        try:
            response = getattr(client, operation)(**params)
        except (ClientError, BotoCoreError) as e:
            error = store_error_from_exception(e, ErrorType.RESOURCE_NOT_FOUND)
            self.logger.error(f"{service_name}.{operation} failed: {error}")
            return Outcome.failure(error)
        return Outcome.success(parser(response))

    def get_documentation_part(self, rest_api_id: str,
                               documentation_part_id: str) -> Outcome[DocumentationPartResult]:
        return self._call(
            "apigateway", "get_documentation_part",
            DocumentationPartResult.from_response,
            restApiId=rest_api_id,
            documentationPartId=documentation_part_id,
        )

    def describe_subscription_filters(self, log_group_name: str,
                                      filter_name_prefix: Optional[str] = None,
                                      next_token: Optional[str] = None,
                                      limit: Optional[int] = None
                                      ) -> Outcome[DescribeSubscriptionFiltersResult]:
        params: Dict[str, Any] = {"logGroupName": log_group_name}
        if filter_name_prefix:
            params["filterNamePrefix"] = filter_name_prefix
        if next_token:
            params["nextToken"] = next_token
        if limit:
            params["limit"] = limit
        return self._call(
            "logs", "describe_subscription_filters",
            DescribeSubscriptionFiltersResult.from_response,
            **params,
        )

    def list_all_subscription_filters(self, log_group_name: str,
                                      filter_name_prefix: Optional[str] = None
                                      ) -> Outcome[DescribeSubscriptionFiltersResult]:
        """nextToken をたどって全ページを1つの結果にまとめる"""
        merged = DescribeSubscriptionFiltersResult()
        next_token = None
        while True:
            outcome = self.describe_subscription_filters(
                log_group_name, filter_name_prefix, next_token
            )
            if not outcome.is_success:
                return outcome
            merged.subscription_filters.extend(outcome.result.subscription_filters)
            next_token = outcome.result.next_token
            if not next_token:
                return Outcome.success(merged)
