from __future__ import annotations
import logging
import sys
import time
from pathlib import Path
import click
from recap_exam_toolkit.config import load_config
from recap_exam_toolkit.errors import RecapError
from recap_exam_toolkit.exam import ExamGenerator, SelectionScope
from recap_exam_toolkit.exporters import available as available_exporters, get_exporter
from recap_exam_toolkit.ingest import ingest_all, ingest_course
from recap_exam_toolkit.jobs import JobScheduler
from recap_exam_toolkit.loader import load_course
from recap_exam_toolkit.stats import format_question_stats, format_summary
from recap_exam_toolkit.store import Store
from recap_exam_toolkit.validity import update_validity_scores

SCOPES = [s.value for s in SelectionScope]


def _fail(e: Exception) -> None:
    click.echo(f"[ERROR] {e}", err=True)
    if isinstance(e, RecapError) and e.suggested_fix:
        click.echo(f"  建议: {e.suggested_fix}", err=True)
    sys.exit(1)


def _store(ctx) -> Store:
    if "store" not in ctx.obj:
        ctx.obj["store"] = Store(ctx.obj["config"].database_url)
        ctx.obj["store"].create_schema()
    return ctx.obj["store"]


@click.group()
@click.option("-c", "--config", "config_path", default="config.yaml", help="配置文件路径")
@click.option("--db-url", default=None, help="数据库连接字符串")
@click.option("--log-level", default=None, help="日志级别: DEBUG / INFO / WARNING")
@click.pass_context
def cli(ctx, config_path, db_url, log_level):
    """题库导入、确定性组卷与题目效度工具"""
    ctx.ensure_object(dict)
    try:
        cfg = load_config(config_path).merged(database_url=db_url, log_level=log_level)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--config") from e
    ctx.obj["config"] = cfg
    logging.basicConfig(
        level=getattr(logging, cfg.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command("init-db")
@click.pass_context
def init_db(ctx):
    """创建数据表并写入默认设置"""
    _store(ctx)
    click.echo(f"✅ 数据库已初始化: {ctx.obj['config'].database_url}")


@cli.command()
@click.argument("course_dir", type=click.Path(exists=True, file_okay=False))
def validate(course_dir):
    """只加载并校验课程目录，不写库"""
    try:
        bank = load_course(course_dir)
    except RecapError as e:
        _fail(e)
    click.echo(f"✅ {bank.course.course_code} 版本 {bank.bank_version} 校验通过 ({bank.source})")
    click.echo(format_summary(bank.questions, bank.metadata.domains))


@cli.command()
@click.argument("course_dir", type=click.Path(exists=True, file_okay=False))
@click.option("--scope", default=None, type=click.Choice(SCOPES), help="抽题范围")
@click.pass_context
def plan(ctx, course_dir, scope):
    """打印组卷计划与试卷概要，不写库"""
    scope = scope or ctx.obj["config"].selection_scope
    try:
        bank = load_course(course_dir)
        gen = ExamGenerator(bank.questions, bank.course, bank.metadata, scope)
        exams = gen.generate()
    except RecapError as e:
        _fail(e)

    click.echo(gen.summary(exams))
    click.echo()
    for exam in exams:
        click.echo(f"  {exam.title}  seed={exam.seed}  {exam.questions_per_exam} 题")


@cli.command()
@click.argument("course_dir", type=click.Path(exists=True, file_okay=False), required=False)
@click.option("--all", "ingest_everything", is_flag=True, help="导入 content_dir 下全部课程")
@click.option("--force", is_flag=True, help="题库未变化也重新导入（会清空该版本的考试记录）")
@click.option("--scope", default=None, type=click.Choice(SCOPES), help="抽题范围")
@click.pass_context
def ingest(ctx, course_dir, ingest_everything, force, scope):
    """校验 → 写入题库 → 重建试卷"""
    cfg = ctx.obj["config"]
    scope = scope or cfg.selection_scope
    store = _store(ctx)

    if ingest_everything or not course_dir:
        results = ingest_all(store, cfg.content_dir, scope, force)
    else:
        try:
            results = [ingest_course(store, course_dir, scope, force)]
        except RecapError as e:
            _fail(e)

    failed = 0
    for r in results:
        if r.error:
            failed += 1
            click.echo(f"  ❌ {r.course_code}: {r.error}")
        elif r.skipped:
            click.echo(f"  ⏭  {r.course_code} 版本 {r.bank_version}: 未变化，跳过")
        else:
            click.echo(f"  ✅ {r.course_code} 版本 {r.bank_version}: {r.questions} 题 → {len(r.exams)} 套试卷")
    if failed:
        sys.exit(1)


@cli.command()
@click.option("--threshold", default=None, type=float, help="低分组比例，默认读取设置")
@click.pass_context
def validity(ctx, threshold):
    """计算一次题目效度分"""
    scores = update_validity_scores(_store(ctx), threshold)
    if scores is None:
        click.echo("已完成考试不足，未更新效度分")
        return
    click.echo(f"✅ 已更新 {len(scores)} 道题的效度分")


@cli.command()
@click.argument("course_code")
@click.option("--version", "bank_version", default=None, help="题库版本，默认当前版本")
@click.option("--questions/--summary", "per_question", default=False, help="逐题统计 / 汇总")
@click.pass_context
def stats(ctx, course_code, bank_version, per_question):
    """课程题目统计"""
    store = _store(ctx)
    if store.get_course(course_code) is None:
        _fail(RecapError(f"课程不存在: {course_code}", course=course_code))
    if per_question:
        click.echo(format_question_stats(store.question_stats(course_code, bank_version)))
    else:
        click.echo(format_summary(store.get_questions(course_code, bank_version),
                                  store.domain_weights(course_code, bank_version)))


@cli.command()
@click.argument("course_code")
@click.option("-o", "--output", default="./output/exams", help="输出路径（不含后缀）")
@click.option("-f", "--format", "formats", multiple=True, help="导出格式: json / csv / xlsx，可多选")
@click.option("--answers/--no-answers", default=True, help="是否附带答案与解析")
@click.pass_context
def export(ctx, course_code, output, formats, answers):
    """导出课程当前版本的试卷"""
    exams = _store(ctx).list_exams(course_code)
    if not exams:
        click.echo(f"课程 {course_code} 没有已生成的试卷。")
        sys.exit(1)

    for fmt in formats or ("xlsx",):
        try:
            exporter = get_exporter(fmt)
        except KeyError:
            click.echo(f"[WARN] 未知格式: {fmt}，可用: {', '.join(available_exporters())}")
            continue
        fp = exporter.export(exams, Path(output), with_answers=answers)
        click.echo(f"✅ {fmt}: {fp}")


def _set_flag(ctx, question_ids, flagged: bool):
    store = _store(ctx)
    for qid in question_ids:
        if store.set_flagged(qid, flagged):
            click.echo(f"  {'🚩 已标记' if flagged else '已取消标记'}: #{qid}")
        else:
            click.echo(f"  [WARN] 题目不存在: #{qid}")


@cli.command()
@click.argument("question_ids", nargs=-1, type=int, required=True)
@click.pass_context
def flag(ctx, question_ids):
    """标记题目待复核"""
    _set_flag(ctx, question_ids, True)


@cli.command()
@click.argument("question_ids", nargs=-1, type=int, required=True)
@click.pass_context
def unflag(ctx, question_ids):
    """取消题目标记"""
    _set_flag(ctx, question_ids, False)


@cli.command()
@click.option("--ingestion-interval", default=None, type=int, help="导入间隔（秒）")
@click.option("--validity-interval", default=None, type=int, help="效度计算间隔（秒）")
@click.pass_context
def run(ctx, ingestion_interval, validity_interval):
    """启动周期任务，Ctrl+C 退出"""
    cfg = ctx.obj["config"].merged(
        ingestion_interval=ingestion_interval, validity_interval=validity_interval,
    )
    store = _store(ctx)

    scheduler = JobScheduler(on_error=lambda name, e: store.log_error(name, e))
    scheduler.add_job("ingest", lambda: ingest_all(store, cfg.content_dir, cfg.selection_scope),
                      cfg.ingestion_interval)
    scheduler.add_job("validity", lambda: update_validity_scores(store), cfg.validity_interval)
    scheduler.start()

    click.echo(f"⏱  调度器运行中 (导入每 {cfg.ingestion_interval}s, 效度每 {cfg.validity_interval}s)，Ctrl+C 退出")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        click.echo("\n正在停止...")
    finally:
        scheduler.stop()


def main():
    cli()


if __name__ == "__main__":
    main()
