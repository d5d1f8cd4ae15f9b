"""boto3クライアント管理"""
import boto3
from botocore.config import Config as BotoConfig
from typing import Optional, Dict, Any
from botocore.exceptions import BotoCoreError, NoCredentialsError, ClientError
from ..models.config import AWSConfig
from ..utils.logger import LoggerManager


class ClientManager:
    """boto3クライアントの作成と管理 (サービス名ごとにキャッシュ)"""

    def __init__(self, aws_config: AWSConfig, max_pool_connections: int = 10):
        self.aws_config = aws_config
        self.max_pool_connections = max_pool_connections
        self.logger = LoggerManager.get_logger("client")
        self._clients: Dict[str, Any] = {}
        self._session: Optional[boto3.Session] = None

    def get_client(self, service_name: str = "s3") -> Any:
        """クライアントを取得（必要に応じて作成）"""
        if service_name not in self._clients:
            self._clients[service_name] = self._create_client(service_name)
        return self._clients[service_name]

    def build_botocore_config(self) -> BotoConfig:
        """タイムアウト・リトライ・プロキシ設定"""
        options: Dict[str, Any] = {
            "connect_timeout": self.aws_config.connect_timeout,
            "read_timeout": self.aws_config.read_timeout,
            "retries": {"max_attempts": self.aws_config.max_attempts, "mode": "standard"},
            "max_pool_connections": self.max_pool_connections,
            "s3": {"addressing_style": self.aws_config.addressing_style},
        }
        if self.aws_config.proxy:
            options["proxies"] = {
                "http": self.aws_config.proxy,
                "https": self.aws_config.proxy,
            }
        return BotoConfig(**options)

    def _get_session(self) -> boto3.Session:
        if self._session is not None:
            return self._session

        if self.aws_config.assume_role:
            credentials = self._assume_role()
            if credentials:
                self._session = boto3.Session(
                    aws_access_key_id=credentials['access_key_id'],
                    aws_secret_access_key=credentials['secret_access_key'],
                    aws_session_token=credentials['session_token'],
                    region_name=self.aws_config.region,
                )
                self.logger.info("Using assumed role credentials.")
                return self._session
            self.logger.warning("Assume role failed, falling back to default credentials.")

        if self.aws_config.profile:
            self._session = boto3.Session(
                profile_name=self.aws_config.profile,
                region_name=self.aws_config.region,
            )
        else:
            self._session = boto3.Session(region_name=self.aws_config.region)
        return self._session

    def _create_client(self, service_name: str) -> Any:
        try:
            kwargs: Dict[str, Any] = {
                "region_name": self.aws_config.region,
                "config": self.build_botocore_config(),
            }
            if self.aws_config.endpoint_url:
                kwargs["endpoint_url"] = self.aws_config.endpoint_url
                kwargs["use_ssl"] = self.aws_config.use_ssl

            client = self._get_session().client(service_name, **kwargs)
            self.logger.info(f"{service_name} client created (region={self.aws_config.region}).")
            return client

        except NoCredentialsError:
            self.logger.error("AWS credentials not available.")
            raise
        except Exception as e:
            self.logger.error(f"Error creating {service_name} client: {e}")
            raise

    def _assume_role(self) -> Optional[Dict[str, str]]:
        """AssumeRoleを実行して一時的な認証情報を取得"""
        assume_role_config = self.aws_config.assume_role

        try:
            endpoint_url = f"https://sts.{self.aws_config.region}.amazonaws.com"
            if self.aws_config.profile:
                base_session = boto3.Session(profile_name=self.aws_config.profile)
            else:
                base_session = boto3.Session()
            sts_client = base_session.client(
                'sts',
                region_name=self.aws_config.region,
                endpoint_url=endpoint_url
            )

            params = {
                'RoleArn': assume_role_config.role_arn,
                'RoleSessionName': assume_role_config.session_name,
                'DurationSeconds': assume_role_config.duration_seconds,
            }
            if assume_role_config.external_id:
                params['ExternalId'] = assume_role_config.external_id

            credentials = sts_client.assume_role(**params)['Credentials']
            self.logger.info(f"Assumed role successfully: {assume_role_config.role_arn}")

            return {
                'access_key_id': credentials['AccessKeyId'],
                'secret_access_key': credentials['SecretAccessKey'],
                'session_token': credentials['SessionToken']
            }

        except (ClientError, BotoCoreError) as e:
            self.logger.error(f"Error assuming role: {e}")
            return None
