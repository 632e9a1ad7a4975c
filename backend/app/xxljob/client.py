from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx
from pydantic.alias_generators import to_camel

from ..errors import ExternalUnavailableError, SchedulerOperationError
from ..schemas.scheduler import (
    LogDetail,
    PageResult,
    SchedulerGroup,
    SchedulerJob,
    SchedulerLog,
)
from .session import SchedulerSession

logger = logging.getLogger(__name__)

API_SUCCESS_CODE = 200
ALL_GROUPS = -1
ALL_TRIGGER_STATUSES = -1
ALL_LOG_STATUSES = 0

# Scheduler fields accepted by /jobinfo/update besides the job id.
_UPDATABLE_FIELDS = (
    "job_group",
    "job_desc",
    "author",
    "alarm_email",
    "schedule_type",
    "schedule_conf",
    "misfire_strategy",
    "executor_route_strategy",
    "executor_handler",
    "executor_param",
    "executor_block_strategy",
    "executor_timeout",
    "executor_fail_retry_count",
    "glue_type",
    "child_job_id",
)


def _is_auth_rejection(response: httpx.Response) -> bool:
    # Unauthenticated calls are answered with 401/403 or a redirect to the
    # scheduler's login page.
    if response.status_code in (401, 403):
        return True
    return response.is_redirect


def _form(data: Mapping[str, Any]) -> dict[str, str]:
    return {key: str(value) for key, value in data.items() if value is not None}


class XxlJobClient:
    """Async client for the xxl-job-admin web API.

    All requests share one ``SchedulerSession``. A request rejected for
    authentication triggers one re-login and one retry; a second rejection
    is reported as ``ExternalUnavailableError``.
    """

    def __init__(
        self,
        *,
        base_url: str,
        username: str,
        password: str,
        timeout_seconds: float = 10.0,
        group_fetch_size: int = 100,
        job_lookup_size: int = 10000,
        session: SchedulerSession | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._username = username
        self._password = password
        self._group_fetch_size = group_fetch_size
        self._job_lookup_size = job_lookup_size
        self._session = session or SchedulerSession()
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            follow_redirects=False,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Any, **kwargs: Any) -> "XxlJobClient":
        return cls(
            base_url=settings.xxl_job_admin_url,
            username=settings.xxl_job_username,
            password=settings.xxl_job_password,
            timeout_seconds=settings.xxl_job_timeout_seconds,
            group_fetch_size=settings.job_group_fetch_size,
            job_lookup_size=settings.job_list_fetch_cap,
            **kwargs,
        )

    @property
    def session(self) -> SchedulerSession:
        return self._session

    async def aclose(self) -> None:
        await self._http.aclose()

    async def login(self) -> str:
        """Authenticate and return the cookie header value for later calls."""
        try:
            response = await self._http.post(
                "/login",
                data={"userName": self._username, "password": self._password},
            )
        except httpx.RequestError as exc:
            logger.error("Scheduler login failed: %s", exc)
            raise ExternalUnavailableError(
                "Failed to authenticate with job scheduler", details=str(exc)
            ) from exc

        if response.status_code >= 400:
            logger.error("Scheduler login rejected status=%s", response.status_code)
            raise ExternalUnavailableError(
                "Failed to authenticate with job scheduler",
                details={"status": response.status_code},
            )

        payload = self._maybe_json(response)
        if isinstance(payload, Mapping) and payload.get("code", API_SUCCESS_CODE) != API_SUCCESS_CODE:
            logger.error("Scheduler login refused: %s", payload.get("msg"))
            raise ExternalUnavailableError(
                "Failed to authenticate with job scheduler",
                details={"code": payload.get("code"), "msg": payload.get("msg")},
            )

        cookie = "; ".join(f"{name}={value}" for name, value in response.cookies.items())
        # The session holder is the only owner of the credential.
        self._http.cookies.clear()
        if not cookie:
            logger.error("Scheduler login returned no session cookie")
            raise ExternalUnavailableError("No session cookie received from job scheduler")

        logger.info("Logged in to job scheduler as %s", self._username)
        return cookie

    async def connect(self) -> None:
        await self._session.refresh(self.login)

    async def _send(self, path: str, data: Mapping[str, Any], cookie: str) -> httpx.Response:
        try:
            return await self._http.post(path, data=_form(data), headers={"Cookie": cookie})
        except httpx.TimeoutException as exc:
            logger.error("Scheduler request timed out path=%s", path)
            raise ExternalUnavailableError(
                "Job scheduler request timed out", details={"path": path}
            ) from exc
        except httpx.RequestError as exc:
            logger.error("Scheduler request failed path=%s error=%s", path, exc)
            raise ExternalUnavailableError(
                details={"path": path, "error": str(exc)}
            ) from exc

    async def _post(self, path: str, data: Mapping[str, Any]) -> Any:
        cookie = await self._session.ensure(self.login)
        generation = self._session.generation
        response = await self._send(path, data, cookie)

        if _is_auth_rejection(response):
            logger.warning("Scheduler session rejected on %s, re-authenticating", path)
            cookie = await self._session.refresh(self.login, stale_generation=generation)
            response = await self._send(path, data, cookie)
            if _is_auth_rejection(response):
                self._session.invalidate()
                logger.error("Scheduler rejected refreshed session on %s", path)
                raise ExternalUnavailableError(
                    "Job scheduler rejected the refreshed session", details={"path": path}
                )

        if response.status_code >= 500:
            raise ExternalUnavailableError(
                details={"path": path, "status": response.status_code}
            )
        if response.status_code >= 400:
            raise SchedulerOperationError(
                details={"path": path, "status": response.status_code}
            )

        payload = self._maybe_json(response)
        if payload is None:
            raise SchedulerOperationError(
                "Job scheduler returned an unreadable response", details={"path": path}
            )
        return payload

    @staticmethod
    def _maybe_json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return None

    @staticmethod
    def _check_api(payload: Any, failure_message: str) -> Any:
        if not isinstance(payload, Mapping) or payload.get("code") != API_SUCCESS_CODE:
            msg = payload.get("msg") if isinstance(payload, Mapping) else None
            code = payload.get("code") if isinstance(payload, Mapping) else None
            raise SchedulerOperationError(msg or failure_message, details={"code": code})
        return payload.get("content")

    @staticmethod
    def _page(payload: Any, model: type) -> PageResult:
        if not isinstance(payload, Mapping):
            raise SchedulerOperationError("Job scheduler returned an invalid page")
        items = payload.get("data") or []
        return PageResult(
            total=int(payload.get("recordsTotal") or 0),
            items=[model.model_validate(item) for item in items if isinstance(item, Mapping)],
        )

    async def list_jobs(
        self,
        job_group: int,
        offset: int = 0,
        limit: int = 10,
        *,
        trigger_status: int = ALL_TRIGGER_STATUSES,
        job_desc: str | None = None,
        executor_handler: str | None = None,
        author: str | None = None,
    ) -> PageResult[SchedulerJob]:
        payload = await self._post(
            "/jobinfo/pageList",
            {
                "jobGroup": job_group,
                "triggerStatus": trigger_status,
                "jobDesc": job_desc or "",
                "executorHandler": executor_handler or "",
                "author": author or "",
                "start": offset,
                "length": limit,
            },
        )
        page = self._page(payload, SchedulerJob)
        logger.debug(
            "Got %s total jobs, %s in current page for group %s",
            page.total,
            len(page.items),
            job_group,
        )
        return page

    async def get_job(self, job_id: int, job_group: int = ALL_GROUPS) -> SchedulerJob | None:
        page = await self.list_jobs(job_group, 0, self._job_lookup_size)
        for job in page.items:
            if job.id == job_id:
                return job
        return None

    async def list_groups(self) -> list[SchedulerGroup]:
        payload = await self._post(
            "/jobgroup/pageList",
            {"start": 0, "length": self._group_fetch_size},
        )
        return self._page(payload, SchedulerGroup).items

    async def trigger(
        self,
        job_id: int,
        executor_param: str | None = None,
        address_list: str | None = None,
    ) -> None:
        payload = await self._post(
            "/jobinfo/trigger",
            {"id": job_id, "executorParam": executor_param, "addressList": address_list},
        )
        self._check_api(payload, "Failed to trigger job")

    async def start(self, job_id: int) -> None:
        payload = await self._post("/jobinfo/start", {"id": job_id})
        self._check_api(payload, "Failed to start job")

    async def stop(self, job_id: int) -> None:
        payload = await self._post("/jobinfo/stop", {"id": job_id})
        self._check_api(payload, "Failed to stop job")

    async def update(self, job: SchedulerJob, changes: Mapping[str, Any]) -> None:
        """Send the job's current configuration overlaid with ``changes``.

        The scheduler validates the whole job on update, so untouched fields
        are resent as they are.
        """
        current = job.model_dump()
        form: dict[str, Any] = {"id": job.id}
        for field_name in _UPDATABLE_FIELDS:
            value = changes.get(field_name, current.get(field_name))
            form[to_camel(field_name)] = value
        payload = await self._post("/jobinfo/update", form)
        self._check_api(payload, "Failed to update job")

    async def list_logs(
        self,
        job_id: int,
        offset: int = 0,
        limit: int = 10,
        *,
        job_group: int = 0,
        log_status: int = ALL_LOG_STATUSES,
        filter_time: str | None = None,
    ) -> PageResult[SchedulerLog]:
        payload = await self._post(
            "/joblog/pageList",
            {
                "jobGroup": job_group,
                "jobId": job_id,
                "logStatus": log_status,
                "filterTime": filter_time,
                "start": offset,
                "length": limit,
            },
        )
        return self._page(payload, SchedulerLog)

    async def log_belongs_to_job(self, job_id: int, log_id: int) -> bool:
        """Whether ``log_id`` is one of the job's execution logs.

        xxl-job has no lookup by log id, so the job's log pages are scanned.
        """
        offset = 0
        while True:
            page = await self.list_logs(job_id, offset, self._job_lookup_size)
            if any(log.id == log_id for log in page.items):
                return True
            offset += len(page.items)
            if not page.items or offset >= page.total:
                return False

    async def get_log_detail(
        self, log_id: int, from_line: int = 0, trigger_time: int = 0
    ) -> LogDetail:
        payload = await self._post(
            "/joblog/logDetailCat",
            {"logId": log_id, "fromLineNum": from_line, "triggerTime": trigger_time},
        )
        content = self._check_api(payload, "Failed to get log detail")
        if not isinstance(content, Mapping):
            return LogDetail(from_line_num=from_line, to_line_num=from_line)
        return LogDetail.model_validate(content)

    async def health_check(self) -> bool:
        try:
            await self.list_groups()
        except (ExternalUnavailableError, SchedulerOperationError) as exc:
            logger.error("Scheduler health check failed: %s", exc)
            return False
        return True
