"""
どこで: `engine.core` サブパッケージ。
何を: 属性ストア（AttributeStore/AttributeSchema）・2D アフィン変換エンジン・表示ノードを提供。
なぜ: 算出属性とアフィン行列の合成/分解を描画や同期から切り離し、上位層（runtime/api）から再利用するため。
"""
