"""中间件模块"""
