"""API 路由模块"""
