"""
どこで: `engine.runtime` サブパッケージ。
何を: create/update/remove メッセージの定義と、それを消費するシーングラフ同期（SceneGraphSync）を提供。
なぜ: 属性変更を生む側と描画側をメッセージ契約だけで結び、到着順に依存しない木構築を行うため。
"""
