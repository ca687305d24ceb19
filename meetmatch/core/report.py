"""
配对结果导出模块
把某一轮的配对结果写成CSV，便于通知参与者
"""

import time
from pathlib import Path
from typing import Optional

import pandas as pd

from meetmatch.storage.sqlite_storage import SQLiteMatchStore
from meetmatch.utils.logger import get_logger

logger = get_logger(__name__)

EXPORT_COLUMNS = [
    'generation',
    'time',
    'person1_id',
    'person1_name',
    'person1_email',
    'person2_id',
    'person2_name',
    'person2_email',
]


def export_generation(
    store: SQLiteMatchStore,
    output_dir: Path,
    generation: Optional[int] = None,
) -> Optional[Path]:
    """导出指定轮次（默认最新一轮）的配对，返回CSV路径；没有任何轮次时返回None"""
    meta = store.latest_generation() if generation is None else store.generation_at(generation)
    if meta is None:
        if generation is None:
            logger.warning("还没有任何配对轮次，跳过导出")
        else:
            logger.warning(f"轮次不存在: {generation}")
        return None
    
    matched_at = time.strftime('%Y-%m-%d %H:%M:%S', time.localtime(meta.created_at))
    records = []
    for match in store.matches_at(meta.id):
        partner = match.person2
        records.append({
            'generation': meta.id,
            'time': matched_at,
            'person1_id': match.person1.id,
            'person1_name': match.person1.name,
            'person1_email': match.person1.email,
            'person2_id': partner.id if partner else None,
            'person2_name': partner.name if partner else '',
            'person2_email': partner.email if partner else '',
        })
    
    df = pd.DataFrame(records, columns=EXPORT_COLUMNS)
    df['person2_id'] = df['person2_id'].astype('Int64')
    
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    output_file = output_dir / f"generation-{meta.id}.csv"
    df.to_csv(output_file, index=False)
    
    singles = int(df['person2_id'].isna().sum())
    logger.info(f"第 {meta.id} 轮配对已导出: {output_file} ({len(df) - singles} 对, {singles} 人轮空)")
    return output_file
