"""Flows 路由

定义流程相关的 API 端点：
- GET    /api/v1/flows                  - 列出所有流程
- GET    /api/v1/flows/{flow_id}        - 获取流程
- POST   /api/v1/flows                  - 创建流程
- PUT    /api/v1/flows/{flow_id}        - 整体更新流程
- DELETE /api/v1/flows/{flow_id}        - 删除流程
- POST   /api/v1/flows/{flow_id}/validate - 结构校验
- POST   /api/v1/flows/{flow_id}/dry-run  - 用给定线索试运行

异常映射：
- NotFoundError → 404
- StructuralError → 422（响应带 violations）
- 其他 DomainError（名称为空、flow_data 格式错误、执行失败）→ 400
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from leadflow.application.use_cases.dry_run_flow import DryRunFlowUseCase
from leadflow.application.use_cases.save_flow import SaveFlowInput, SaveFlowUseCase
from leadflow.config import settings
from leadflow.domain.exceptions import DomainError, NotFoundError, StructuralError
from leadflow.domain.services.graph_validator import validate
from leadflow.infrastructure.adapters.recording_action_dispatcher import (
    RecordingActionDispatcher,
)
from leadflow.infrastructure.database.engine import get_db_session
from leadflow.infrastructure.database.repositories.flow_repository import (
    SQLAlchemyFlowRepository,
)
from leadflow.infrastructure.serialization.flow_wire import FlowPayload
from leadflow.interfaces.api.dto import (
    DryRunRequest,
    DryRunResponse,
    FlowRequest,
    ValidationResponse,
    ViolationDTO,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/flows", tags=["flows"])


def get_flow_repository(session: Session = Depends(get_db_session)) -> SQLAlchemyFlowRepository:
    """获取 Flow Repository - 依赖注入函数"""
    return SQLAlchemyFlowRepository(session)


def _structural_error_response(error: StructuralError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "detail": str(error),
            "violations": [v.to_dict() for v in error.violations],
        },
    )


@router.get("", response_model=list[FlowPayload])
def list_flows(
    flow_repository: SQLAlchemyFlowRepository = Depends(get_flow_repository),
) -> list[FlowPayload]:
    try:
        return [FlowPayload.from_entity(flow) for flow in flow_repository.find_all()]
    except DomainError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/{flow_id}", response_model=FlowPayload)
def get_flow(
    flow_id: str,
    flow_repository: SQLAlchemyFlowRepository = Depends(get_flow_repository),
) -> FlowPayload:
    try:
        return FlowPayload.from_entity(flow_repository.get_by_id(flow_id))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except DomainError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("", response_model=FlowPayload, status_code=status.HTTP_201_CREATED)
def create_flow(
    request: FlowRequest,
    flow_repository: SQLAlchemyFlowRepository = Depends(get_flow_repository),
    session: Session = Depends(get_db_session),
):
    """创建流程

    业务流程：
    1. 解析 flow_data（格式错误 → 400）
    2. is_active=True 时强校验（违规 → 422）
    3. 分配 ID，保存
    """
    try:
        flow = SaveFlowUseCase(flow_repository).execute(
            SaveFlowInput(
                name=request.name,
                graph=request.flow_data.to_graph(),
                is_active=request.is_active,
            )
        )
        session.commit()
        return FlowPayload.from_entity(flow)
    except StructuralError as e:
        session.rollback()
        logger.info(f"拒绝启用结构不合法的流程: {e}")
        return _structural_error_response(e)
    except DomainError as e:
        session.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/{flow_id}", response_model=FlowPayload)
def update_flow(
    flow_id: str,
    request: FlowRequest,
    flow_repository: SQLAlchemyFlowRepository = Depends(get_flow_repository),
    session: Session = Depends(get_db_session),
):
    """整体更新流程（名称、流程图、启用状态）"""
    try:
        flow = SaveFlowUseCase(flow_repository).execute(
            SaveFlowInput(
                flow_id=flow_id,
                name=request.name,
                graph=request.flow_data.to_graph(),
                is_active=request.is_active,
            )
        )
        session.commit()
        return FlowPayload.from_entity(flow)
    except NotFoundError as e:
        session.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except StructuralError as e:
        session.rollback()
        logger.info(f"拒绝启用结构不合法的流程: flow_id={flow_id}, {e}")
        return _structural_error_response(e)
    except DomainError as e:
        session.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{flow_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_flow(
    flow_id: str,
    flow_repository: SQLAlchemyFlowRepository = Depends(get_flow_repository),
    session: Session = Depends(get_db_session),
) -> Response:
    if not flow_repository.exists(flow_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(NotFoundError(entity_type="Flow", entity_id=flow_id)),
        )
    flow_repository.delete(flow_id)
    session.commit()
    logger.info(f"流程已删除: flow_id={flow_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{flow_id}/validate", response_model=ValidationResponse)
def validate_flow(
    flow_id: str,
    flow_repository: SQLAlchemyFlowRepository = Depends(get_flow_repository),
) -> ValidationResponse:
    try:
        flow = flow_repository.get_by_id(flow_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except DomainError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    violations = validate(flow.graph)
    return ValidationResponse(
        valid=not violations,
        violations=[ViolationDTO.from_entity(v) for v in violations],
    )


@router.post("/{flow_id}/dry-run", response_model=DryRunResponse)
async def dry_run_flow(
    flow_id: str,
    request: DryRunRequest,
    flow_repository: SQLAlchemyFlowRepository = Depends(get_flow_repository),
) -> DryRunResponse:
    """用给定线索试运行流程，只返回会被投递的动作命令"""
    use_case = DryRunFlowUseCase(
        flow_repository,
        RecordingActionDispatcher(),
        max_steps=settings.flow_engine_max_steps,
    )
    try:
        result = await use_case.execute(flow_id, request.lead)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except DomainError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return DryRunResponse.from_result(result)
