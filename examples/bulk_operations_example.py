"""客户端与批量写入使用示例.

本文件展示了如何使用 ElasticClient 连接多节点集群、读写文档、开启镜像写入
以及通过 BulkBatcher 进行分块批量写入。
"""

import logging

from elasticrelay import (
    BulkProcessingError,
    ElasticClient,
    ExhaustedEndpointsError,
    MirrorWriteError,
)

logging.basicConfig(level=logging.INFO)

# 创建客户端：三个节点，每次请求按随机顺序尝试
client = ElasticClient.connection(
    {
        "servers": [
            {"host": "es1", "port": 9200},
            {"host": "es2", "port": 9200},
            {"host": "es3", "port": 9200},
        ],
        "index": "users",
        "type": "doc",
        "bulk_chunk_size": 500,  # 每个 _bulk 请求最多 500 个操作
        "connect_timeout": 500,  # 毫秒
        "request_timeout": 6000,  # 毫秒
    }
)


# ==================== 示例1：读写单个文档 ====================
def example_documents():
    """索引、读取和删除单个文档."""
    client.index({"name": "张三", "age": 25}, id="1", options={"refresh": True})

    print("文档内容:", client.get("1"))
    print("完整响应:", client.get("1", verbose=True))

    client.delete("1")


# ==================== 示例2：搜索 ====================
def example_search():
    """DSL 搜索、query string 搜索和多重搜索."""
    result = client.search({"query": {"match": {"name": "张三"}}})
    print(f"DSL 搜索耗时: {result['time']:.3f}秒")

    result = client.search("name:张三", {"size": 5})
    print("query string 搜索:", result.get("hits"))

    client.queue_search({"query": {"match_all": {}}}, index="users")
    client.queue_search({"size": 0}, index="logs")
    result = client.multi_search()
    print(f"多重搜索返回 {len(result.get('responses', []))} 个结果")


# ==================== 示例3：批量写入 ====================
def example_bulk():
    """分块批量写入，结果按添加顺序合并."""
    batcher = client.bulk()
    for i in range(1200):
        batcher.index({"name": f"user-{i}", "age": 20 + i % 30}, id=str(i))
    batcher.update({"age": 99}, id="1")
    batcher.delete("2")
    batcher.create({"name": "张三"}, id="3")  # 已存在时该操作失败

    try:
        result = batcher.commit()
    except BulkProcessingError as e:
        # 已提交的分块不会重复发送，剩余操作仍在 batcher 中，可以稍后再次 commit()
        print(f"分块 {e.chunk_index + 1} 提交失败: {e}")
        print(f"  已提交: {len(e.result.items)} 个操作，剩余: {len(batcher)} 个")
        return e.result

    print("批量写入结果:")
    print(f"  操作数: {len(result.items)}")
    print(f"  分块数: {result.chunk_count}")
    print(f"  耗时: {result.took:.2f}秒")
    print(f"  存在失败: {result.errors}")

    if result.errors:
        print(f"  错误摘要:\n{result.get_error_summary()}")

    return result


# ==================== 示例4：镜像写入 ====================
def example_mirror():
    """写入 users 的同时写入 users_mirror，用于在线重建索引."""
    mirrored = ElasticClient.connection(
        {
            "servers": ["es1:9200", "es2:9200"],
            "index": "users",
            "type": "doc",
            "mirror_indexing": True,
        }
    )
    try:
        mirrored.index({"name": "李四"}, id="2")
    except MirrorWriteError as e:
        # 主索引已经写入成功，只有镜像索引失败
        print(f"镜像写入失败: {e}, 主索引结果: {e.primary}")
    finally:
        mirrored.close()


if __name__ == "__main__":
    try:
        example_documents()
        example_search()
        example_bulk()
        example_mirror()
    except ExhaustedEndpointsError as e:
        print(f"集群不可用: {e}")
    finally:
        client.close()
