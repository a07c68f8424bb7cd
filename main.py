"""
Main entry point for the quote client.
Provides a command-line interface over the resilient Yahoo Finance quote client.
"""

import asyncio
import argparse
import json
import sys
from typing import Any, List, Optional

from utils import quote_client_logger, QuoteSystemError, create_error_response
from data_sources import QuoteClient, YFinanceSource


class QuoteClientCLI:
    """行情客户端命令行"""

    def __init__(self, client: Optional[QuoteClient] = None):
        self.client = client or QuoteClient()

    async def show_quote(self, symbol: str, modules: Optional[List[str]] = None):
        """输出 quote summary"""
        data = await self.client.get_quote_summary(symbol, modules)
        self._print_json(data)

    async def show_history(self, symbol: str, start_date: str, end_date: str, interval: str):
        """输出历史行情"""
        quotes = await self.client.get_historical_data(symbol, start_date, end_date, interval)
        if quotes is None:
            self._print_json([])
            return
        self._print_json([q.model_dump(mode='json') for q in quotes])

    async def run_search(self, query: str):
        """输出搜索结果"""
        results = await self.client.search(query)
        self._print_json([r.model_dump(mode='json') for r in results or []])

    async def show_status(self):
        """输出数据源健康状态和缓存统计"""
        source = self.client.source
        healthy = await source.health_check() if isinstance(source, YFinanceSource) else None
        self._print_json({
            'source': source.get_source_info(),
            'healthy': healthy,
            'cache': self.client.get_cache_stats(),
        })

    @staticmethod
    def _print_json(data: Any):
        print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def create_parser():
    """创建命令行参数解析器"""
    parser = argparse.ArgumentParser(
        description="Quote Client - Yahoo Finance 行情客户端",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
使用示例:
  python main.py quote AAPL                                   # 默认模块的 quote summary
  python main.py quote MSFT --modules price summaryDetail     # 指定模块
  python main.py history AAPL --start-date 2024-01-01 --end-date 2024-03-31 --interval 1wk
  python main.py search "apple"                               # 搜索交易代码
  python main.py status                                       # 数据源健康检查
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='可用命令')

    # quote summary
    quote_parser = subparsers.add_parser('quote', help='获取 quote summary')
    quote_parser.add_argument('symbol', help='交易代码 (如: AAPL)')
    quote_parser.add_argument('--modules', nargs='+', help='quote summary 模块列表 (默认: 配置中的 default_modules)')

    # 历史行情
    history_parser = subparsers.add_parser('history', help='获取历史行情')
    history_parser.add_argument('symbol', help='交易代码')
    history_parser.add_argument('--start-date', required=True, help='开始日期 (YYYY-MM-DD)')
    history_parser.add_argument('--end-date', required=True, help='结束日期 (YYYY-MM-DD)')
    history_parser.add_argument('--interval', default='1d', choices=['1d', '1wk', '1mo'],
                                help='数据粒度 (默认: 1d)')

    # 搜索
    search_parser = subparsers.add_parser('search', help='搜索交易代码')
    search_parser.add_argument('query', help='搜索关键字')

    # 状态
    subparsers.add_parser('status', help='数据源健康检查和缓存统计')

    return parser


async def main(argv: Optional[List[str]] = None, client: Optional[QuoteClient] = None) -> int:
    """主函数，返回进程退出码"""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    app = QuoteClientCLI(client)
    try:
        if args.command == 'quote':
            await app.show_quote(args.symbol, args.modules)
        elif args.command == 'history':
            await app.show_history(args.symbol, args.start_date, args.end_date, args.interval)
        elif args.command == 'search':
            await app.run_search(args.query)
        elif args.command == 'status':
            await app.show_status()
        return 0

    except KeyboardInterrupt:
        quote_client_logger.info("[Main] Received keyboard interrupt")
        return 130
    except Exception as e:
        status, body = create_error_response(e, app.client.config.error_messages)
        if not isinstance(e, QuoteSystemError):
            quote_client_logger.error(f"[Main] {args.command} failed: {e}")
        print(json.dumps({'status': status, **body}, ensure_ascii=False), file=sys.stderr)
        return 2 if status == 400 else 1


def cli():
    """命令行入口"""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
