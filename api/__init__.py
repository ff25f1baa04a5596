"""
API HTTP del API Sandbox.

Esta capa expone endpoints REST que usan el core interno (sandbox_core)
para importar specs OpenAPI, servir mocks y controlar Mockoon.

La API está diseñada para ser consumida por:
- El dashboard web
- Clientes que prueban contra los mocks
- Scripts de automatización
"""
