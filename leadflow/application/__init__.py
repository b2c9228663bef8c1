"""应用层 - 用例编排与编辑会话

- SaveFlowUseCase / DryRunFlowUseCase / ProcessLeadEventUseCase: 后端用例
- EditingSession: 编辑端的单写者会话（见 application.services.editing_session）
"""
